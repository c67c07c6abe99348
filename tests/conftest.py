"""Shared pytest fixtures: a migrated temp database and account seeding."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from pathlib import Path

import pytest

from fin_ingest.shared import paths
from fin_ingest.shared.config import AppConfig, load_config
from fin_ingest.shared.database import connect, run_migrations
from fin_ingest.shared.models import create_account


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    """Return an AppConfig backed by a temp SQLite database with migrations applied."""

    env = {
        paths.CONFIG_DIR_ENV: str(tmp_path / "config"),
        paths.DATABASE_PATH_ENV: str(tmp_path / "ledger.db"),
    }
    config = load_config(env=env)
    run_migrations(config)
    return config


@pytest.fixture()
def make_account(app_config: AppConfig) -> Callable[..., int]:
    def _make(
        name: str = "Everyday Checking",
        *,
        owner_type: str = "personal",
        category: str = "checking",
        balance: str = "0",
    ) -> int:
        with connect(app_config) as connection:
            account_id = create_account(
                connection,
                name=name,
                owner_type=owner_type,
                category=category,
                balance=Decimal(balance),
            )
            connection.commit()
        return account_id

    return _make
