"""SQL migrations applied by :func:`fin_ingest.shared.database.run_migrations`."""
