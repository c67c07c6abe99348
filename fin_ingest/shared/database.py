"""Database utilities and migration runner."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Iterator, Sequence

from .config import AppConfig
from .exceptions import DatabaseError

MIGRATION_PACKAGE = "fin_ingest.shared.migrations"


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    description: str
    sql: str


def _resolve_database_path(config: AppConfig) -> Path:
    db_path = config.database.path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


def _open_connection(
    path: Path,
    *,
    read_only: bool = False,
    timeout: float | None = None,
    autocommit: bool = False,
) -> sqlite3.Connection:
    kwargs: dict[str, object] = {"check_same_thread": False}
    if timeout is not None:
        kwargs["timeout"] = timeout
    if autocommit:
        # Callers drive BEGIN IMMEDIATE / COMMIT themselves.
        kwargs["isolation_level"] = None
    try:
        if read_only:
            uri = f"file:{path}?mode=ro"
            conn = sqlite3.connect(uri, uri=True, **kwargs)
        else:
            conn = sqlite3.connect(path, **kwargs)
    except sqlite3.Error as exc:
        raise DatabaseError(f"Unable to open database at {path}: {exc}") from exc
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _load_migrations() -> Sequence[Migration]:
    migrations: list[Migration] = []
    with resources.as_file(resources.files(MIGRATION_PACKAGE)) as package_path:
        for entry in sorted(package_path.iterdir()):
            if entry.suffix.lower() != ".sql":
                continue
            name = entry.stem
            try:
                version_str, description = name.split("_", 1)
            except ValueError:
                version_str, description = name, name
            try:
                version = int(version_str)
            except ValueError as exc:  # pragma: no cover - configuration time error
                raise DatabaseError(f"Invalid migration filename '{entry.name}'") from exc
            sql = entry.read_text(encoding="utf-8")
            migrations.append(Migration(version=version, name=name, description=description, sql=sql))
    migrations.sort(key=lambda m: m.version)
    return migrations


def _get_applied_versions(connection: sqlite3.Connection) -> set[int]:
    try:
        rows = connection.execute("SELECT version FROM schema_versions").fetchall()
    except sqlite3.OperationalError:
        return set()
    return {int(row[0]) for row in rows}


def run_migrations(config: AppConfig) -> None:
    """Apply pending migrations using the config's database path."""
    db_path = _resolve_database_path(config)
    migrations = _load_migrations()
    if not migrations:
        return

    connection = _open_connection(db_path)
    try:
        applied = _get_applied_versions(connection)
        for migration in migrations:
            if migration.version in applied:
                continue
            try:
                connection.executescript(migration.sql)
                connection.execute(
                    "INSERT OR REPLACE INTO schema_versions(version, description) VALUES (?, ?)",
                    (migration.version, migration.description),
                )
                connection.commit()
            except sqlite3.Error as exc:
                connection.rollback()
                raise DatabaseError(f"Migration {migration.name} failed: {exc}") from exc
    finally:
        connection.close()


@contextmanager
def connect(
    config: AppConfig,
    *,
    read_only: bool = False,
    apply_migrations: bool = True,
    autocommit: bool = False,
) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection for the configured database.

    The busy timeout comes from ``ledger.commit_timeout_seconds`` so a locked
    database surfaces as an error instead of blocking indefinitely.
    """
    if apply_migrations and not read_only:
        run_migrations(config)
    db_path = _resolve_database_path(config)
    connection = _open_connection(
        db_path,
        read_only=read_only,
        timeout=config.ledger.commit_timeout_seconds,
        autocommit=autocommit,
    )
    try:
        yield connection
    finally:
        connection.close()


@contextmanager
def immediate_transaction(connection: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block inside ``BEGIN IMMEDIATE`` on an autocommit connection.

    The reserved lock is taken up front, so concurrent writers queue on the
    busy timeout instead of interleaving their read-modify-write sequences.
    """
    try:
        connection.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as exc:
        raise DatabaseError(f"Could not acquire write lock: {exc}") from exc
    try:
        yield connection
    except BaseException:
        if connection.in_transaction:
            connection.execute("ROLLBACK")
        raise
    try:
        connection.execute("COMMIT")
    except sqlite3.Error as exc:
        if connection.in_transaction:
            connection.execute("ROLLBACK")
        raise DatabaseError(f"Commit failed: {exc}") from exc
