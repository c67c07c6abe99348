"""Configuration loading utilities for the statement ingestion suite."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Database-related configuration."""

    path: Path


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Tabular import heuristics."""

    default_category: str
    header_min_matches: int
    header_keywords: tuple[str, ...]
    role_keywords: Mapping[str, tuple[str, ...]]
    drop_zero_amounts: bool


@dataclass(frozen=True, slots=True)
class StatementTextSettings:
    """Statement-text pattern configuration."""

    patterns: tuple[str, ...]
    raw_preview_chars: int


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    """Reconciliation writer configuration."""

    commit_timeout_seconds: float


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    database: DatabaseSettings
    imports: ImportSettings
    statement_text: StatementTextSettings
    ledger: LedgerSettings

    def with_database_path(self, new_path: str | Path) -> AppConfig:
        """Return a copy with an updated database path."""
        resolved = paths.resolve_path(new_path)
        new_db = replace(self.database, path=resolved)
        return replace(self, database=new_db)


_ROLE_NAMES = ("date", "description", "amount", "category")


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "database": {"path": str(paths.default_database_path(env=env))},
        "import": {
            "default_category": "Other",
            "header_min_matches": 2,
            "header_keywords": [],
            "role_keywords": {},
            "drop_zero_amounts": True,
        },
        "statement_text": {
            "patterns": ["lili", "generic"],
            "raw_preview_chars": 2000,
        },
        "ledger": {
            "commit_timeout_seconds": 5.0,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "database.path": (paths.DATABASE_PATH_ENV, str),
    "import.default_category": ("FININGEST_DEFAULT_CATEGORY", str),
    "import.header_min_matches": ("FININGEST_HEADER_MIN_MATCHES", int),
    "import.header_keywords": ("FININGEST_HEADER_KEYWORDS", list),
    "import.drop_zero_amounts": ("FININGEST_DROP_ZERO_AMOUNTS", bool),
    "statement_text.patterns": ("FININGEST_TEXT_PATTERNS", list),
    "statement_text.raw_preview_chars": ("FININGEST_TEXT_RAW_PREVIEW_CHARS", int),
    "ledger.commit_timeout_seconds": ("FININGEST_COMMIT_TIMEOUT", float),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    if expected_type is list:
        if not cleaned:
            return []
        return tuple(part.strip() for part in cleaned.split(",") if part.strip())
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _keyword_tuple(values: Any) -> tuple[str, ...]:
    if isinstance(values, str):
        values = [values]
    return tuple(str(value).strip().lower() for value in values if str(value).strip())


def _build_role_keywords(raw: Mapping[str, Any]) -> dict[str, tuple[str, ...]]:
    unknown = set(raw) - set(_ROLE_NAMES)
    if unknown:
        raise ConfigurationError(
            f"Unknown column role(s) in import.role_keywords: {', '.join(sorted(unknown))}"
        )
    return {role: _keyword_tuple(words) for role, words in raw.items()}


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        database = DatabaseSettings(path=paths.resolve_path(data["database"]["path"]))
        import_cfg = data["import"]
        imports = ImportSettings(
            default_category=str(import_cfg["default_category"]),
            header_min_matches=int(import_cfg["header_min_matches"]),
            header_keywords=_keyword_tuple(import_cfg["header_keywords"]),
            role_keywords=_build_role_keywords(import_cfg["role_keywords"] or {}),
            drop_zero_amounts=bool(import_cfg["drop_zero_amounts"]),
        )
        text_cfg = data["statement_text"]
        statement_text = StatementTextSettings(
            patterns=tuple(str(name).strip().lower() for name in text_cfg["patterns"]),
            raw_preview_chars=int(text_cfg["raw_preview_chars"]),
        )
        ledger = LedgerSettings(
            commit_timeout_seconds=float(data["ledger"]["commit_timeout_seconds"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if imports.header_min_matches < 1:
        raise ConfigurationError("import.header_min_matches must be at least 1")
    if ledger.commit_timeout_seconds <= 0:
        raise ConfigurationError("ledger.commit_timeout_seconds must be positive")

    return AppConfig(
        source_path=source_path,
        database=database,
        imports=imports,
        statement_text=statement_text,
        ledger=ledger,
    )
