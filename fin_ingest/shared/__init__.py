"""Shared infrastructure for the fin-ingest CLIs."""
