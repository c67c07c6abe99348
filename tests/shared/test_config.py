from __future__ import annotations

from pathlib import Path

import pytest

from fin_ingest.shared import paths
from fin_ingest.shared.config import AppConfig, load_config
from fin_ingest.shared.exceptions import ConfigurationError


def _isolated_env(tmp_path: Path, **extra: str) -> dict[str, str]:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    env.update(extra)
    return env


def test_load_config_defaults(tmp_path: Path) -> None:
    env = _isolated_env(tmp_path)
    cfg = load_config(env=env)
    assert isinstance(cfg, AppConfig)
    assert cfg.database.path == paths.default_database_path(env=env)
    assert cfg.imports.default_category == "Other"
    assert cfg.imports.header_min_matches == 2
    assert cfg.imports.header_keywords == ()
    assert cfg.imports.drop_zero_amounts is True
    assert cfg.statement_text.patterns == ("lili", "generic")
    assert cfg.statement_text.raw_preview_chars == 2000
    assert cfg.ledger.commit_timeout_seconds == 5.0


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    cfg_file = cfg_dir / "config.yaml"
    cfg_file.write_text(
        """
        database:
          path: ~/alt.db
        import:
          default_category: Uncategorized
          header_keywords: [Posting, Reference]
          role_keywords:
            description: [details]
            amount: [value]
          drop_zero_amounts: false
        statement_text:
          patterns: [generic]
        ledger:
          commit_timeout_seconds: 1.5
        """,
        encoding="utf-8",
    )
    cfg = load_config(env=_isolated_env(tmp_path))
    assert cfg.source_path == cfg_file
    assert cfg.database.path == paths.resolve_path("~/alt.db")
    assert cfg.imports.default_category == "Uncategorized"
    assert cfg.imports.header_keywords == ("posting", "reference")
    assert cfg.imports.role_keywords == {"description": ("details",), "amount": ("value",)}
    assert cfg.imports.drop_zero_amounts is False
    assert cfg.imports.header_min_matches == 2
    assert cfg.statement_text.patterns == ("generic",)
    assert cfg.ledger.commit_timeout_seconds == 1.5


def test_load_config_env_overrides(tmp_path: Path) -> None:
    custom_db = tmp_path / "custom.db"
    env = _isolated_env(
        tmp_path,
        FININGEST_DATABASE_PATH=str(custom_db),
        FININGEST_DEFAULT_CATEGORY="Misc",
        FININGEST_HEADER_MIN_MATCHES="3",
        FININGEST_HEADER_KEYWORDS="posting, reference",
        FININGEST_DROP_ZERO_AMOUNTS="no",
        FININGEST_TEXT_PATTERNS="generic,lili",
        FININGEST_COMMIT_TIMEOUT="0.25",
    )
    cfg = load_config(env=env)
    assert cfg.database.path == paths.resolve_path(custom_db)
    assert cfg.imports.default_category == "Misc"
    assert cfg.imports.header_min_matches == 3
    assert cfg.imports.header_keywords == ("posting", "reference")
    assert cfg.imports.drop_zero_amounts is False
    assert cfg.statement_text.patterns == ("generic", "lili")
    assert cfg.ledger.commit_timeout_seconds == 0.25


def test_env_override_with_bad_value_raises(tmp_path: Path) -> None:
    env = _isolated_env(tmp_path, FININGEST_DROP_ZERO_AMOUNTS="sometimes")
    with pytest.raises(ConfigurationError, match="FININGEST_DROP_ZERO_AMOUNTS"):
        load_config(env=env)


def test_invalid_yaml_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("- just a list", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_path=cfg_file, env=_isolated_env(tmp_path))


def test_unknown_role_keyword_rejected(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("import:\n  role_keywords:\n    balance: [running]\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="balance"):
        load_config(config_path=cfg_file, env=_isolated_env(tmp_path))


@pytest.mark.parametrize(
    "body",
    [
        "import:\n  header_min_matches: 0\n",
        "ledger:\n  commit_timeout_seconds: 0\n",
    ],
)
def test_out_of_range_values_rejected(tmp_path: Path, body: str) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_path=cfg_file, env=_isolated_env(tmp_path))


def test_with_database_path_returns_copy(tmp_path: Path) -> None:
    cfg = load_config(env=_isolated_env(tmp_path))
    moved = cfg.with_database_path(tmp_path / "moved.db")
    assert moved.database.path == tmp_path / "moved.db"
    assert cfg.database.path != moved.database.path
    assert moved.imports == cfg.imports
