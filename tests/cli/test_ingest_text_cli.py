from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from click.testing import CliRunner

from fin_ingest.ingest_text.main import main as ingest_text_cli
from fin_ingest.shared.database import connect
from fin_ingest.shared.models import get_account, list_transactions

STATEMENT = """\
Lili Business Checking
01/08/2026 4721 AMAZON.COM MARKETPLACE 45.99 1,204.33
01/09/2026 5512 STRIPE PAYOUT -$1,250.00 $2,454.33
"""


def _invoke(app_config, tmp_path: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(
        ingest_text_cli,
        [*args, "--db", str(app_config.database.path), "--config", str(tmp_path / "absent.yaml")],
        prog_name="fin-ingest-text",
    )


def _statement(tmp_path: Path, body: str = STATEMENT) -> Path:
    path = tmp_path / "statement.txt"
    path.write_text(body, encoding="utf-8")
    return path


def test_preview_reports_matched_pattern(app_config, tmp_path: Path) -> None:
    result = _invoke(app_config, tmp_path, str(_statement(tmp_path)))

    assert result.exit_code == 0, result.output
    assert "4721" in result.stdout
    assert "Matched pattern: lili" in result.stderr
    assert "Transactions: 2" in result.stderr


def test_json_output_lists_transactions(app_config, tmp_path: Path) -> None:
    result = _invoke(app_config, tmp_path, str(_statement(tmp_path)), "--pattern", "generic", "--json")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["pattern"] == "generic"
    assert payload["transactions"][0] == {
        "line_number": 2,
        "date": "2026-01-08",
        "description": "AMAZON.COM MARKETPLACE",
        "amount": "45.99",
    }


def test_skipped_lines_are_reported(app_config, tmp_path: Path) -> None:
    body = "2026-01-09 Coffee Shop $4.50\n01/11/2026 NO AMOUNT HERE\n"
    result = _invoke(app_config, tmp_path, str(_statement(tmp_path, body)), "--show-skipped")

    assert result.exit_code == 0, result.output
    assert "Skipped lines: 1" in result.stderr


def test_unmatched_text_warns(app_config, tmp_path: Path) -> None:
    result = _invoke(app_config, tmp_path, str(_statement(tmp_path, "nothing useful\n")))

    assert result.exit_code == 0, result.output
    assert "No transactions recognised" in result.stderr


def test_unknown_pattern_is_usage_error(app_config, tmp_path: Path) -> None:
    result = _invoke(app_config, tmp_path, str(_statement(tmp_path)), "--pattern", "chase")

    assert result.exit_code == 2
    assert "Unknown pattern(s): chase" in result.output


def test_commit_imports_recovered_transactions(app_config, make_account, tmp_path: Path) -> None:
    account_id = make_account("Ops", owner_type="business", balance="1000.00")

    result = _invoke(
        app_config,
        tmp_path,
        str(_statement(tmp_path)),
        "--account-type",
        "business",
        "--account",
        str(account_id),
        "--commit",
    )

    assert result.exit_code == 0, result.output
    assert "Imported 2 transaction(s)." in result.stderr
    with connect(app_config, read_only=True) as connection:
        account = get_account(connection, account_id)
        stored = list_transactions(connection, account_id)
    assert account is not None and account.balance == Decimal("-204.01")
    assert [(txn.category, txn.subcategory) for txn in stored] == [
        ("income", "Other"),
        ("expense", "Other"),
    ]


def test_commit_without_account_fails_before_reading(app_config, tmp_path: Path) -> None:
    result = _invoke(app_config, tmp_path, str(_statement(tmp_path)), "--commit")

    assert result.exit_code == 1
    assert "Select a target account" in result.output
    assert "Matched pattern" not in result.output
