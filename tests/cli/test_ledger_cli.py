from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from click.testing import CliRunner

from fin_ingest.ingest_csv.types import ParsedTransactionCandidate
from fin_ingest.ledger.main import cli as ledger_cli
from fin_ingest.ledger.writer import ReconciliationWriter
from fin_ingest.shared.database import connect
from fin_ingest.shared.models import get_account, list_accounts


def _invoke(app_config, tmp_path: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(
        ledger_cli,
        ["--db", str(app_config.database.path), "--config", str(tmp_path / "absent.yaml"), *args],
        prog_name="fin-ledger",
    )


def _seed(app_config, account_id: int) -> None:
    rows = [
        ParsedTransactionCandidate(1, "2026-01-05", "Coffee", Decimal("-4.50"), "Food"),
        ParsedTransactionCandidate(2, "2026-01-20", "Paycheck", Decimal("2500.00"), "Salary"),
        ParsedTransactionCandidate(3, "2026-02-02", "Rent", Decimal("-1200.00"), "Housing"),
    ]
    ReconciliationWriter(app_config).commit(account_id, rows)


def test_add_account_and_list_as_json(app_config, tmp_path: Path) -> None:
    created = _invoke(
        app_config, tmp_path, "add-account", "Ops", "--type", "business", "--category", "credit_card", "--balance", "(25.00)"
    )
    assert created.exit_code == 0, created.output
    assert "Created account #1: Ops" in created.stderr

    _invoke(app_config, tmp_path, "add-account", "Everyday")

    listed = _invoke(app_config, tmp_path, "accounts", "--type", "business", "--json")
    assert listed.exit_code == 0, listed.output
    assert json.loads(listed.stdout) == [
        {"id": 1, "name": "Ops", "owner_type": "business", "category": "credit_card", "balance": "-25.00"}
    ]


def test_accounts_table_and_empty_warning(app_config, make_account, tmp_path: Path) -> None:
    empty = _invoke(app_config, tmp_path, "accounts")
    assert empty.exit_code == 0, empty.output
    assert "No accounts found." in empty.stderr

    make_account("Everyday")
    listed = _invoke(app_config, tmp_path, "accounts")
    assert "Everyday" in listed.stdout


def test_add_account_dry_run_and_bad_balance(app_config, tmp_path: Path) -> None:
    dry = _invoke(app_config, tmp_path, "--dry-run", "add-account", "Ops")
    assert dry.exit_code == 0, dry.output
    assert "Dry-run: would create" in dry.stderr

    bad = _invoke(app_config, tmp_path, "add-account", "Ops", "--balance", "lots")
    assert bad.exit_code == 2

    with connect(app_config, read_only=True) as connection:
        assert list_accounts(connection) == []


def test_transactions_filters_by_date(app_config, make_account, tmp_path: Path) -> None:
    account_id = make_account()
    _seed(app_config, account_id)

    result = _invoke(
        app_config, tmp_path, "transactions", str(account_id), "--from", "2026-01-01", "--to", "01/31/2026", "--json"
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["balance"] == "1295.50"
    assert [txn["description"] for txn in payload["transactions"]] == ["Coffee", "Paycheck"]
    assert payload["transactions"][0]["subcategory"] == "Food"


def test_transactions_rejects_bad_date_and_unknown_account(app_config, make_account, tmp_path: Path) -> None:
    account_id = make_account()
    bad_date = _invoke(app_config, tmp_path, "transactions", str(account_id), "--from", "soon")
    assert bad_date.exit_code == 2

    missing = _invoke(app_config, tmp_path, "transactions", "42")
    assert missing.exit_code == 1
    assert "does not exist" in missing.output


def test_delete_range_backs_out_balance(app_config, make_account, tmp_path: Path) -> None:
    account_id = make_account()
    _seed(app_config, account_id)

    dry = _invoke(
        app_config, tmp_path, "--dry-run", "delete-range", str(account_id), "--from", "2026-01-01", "--to", "2026-01-31"
    )
    assert dry.exit_code == 0, dry.output
    assert "would delete 2 transaction(s)" in dry.stderr

    result = _invoke(
        app_config, tmp_path, "delete-range", str(account_id), "--from", "2026-01-01", "--to", "2026-01-31"
    )
    assert result.exit_code == 0, result.output
    assert "Deleted 2 transaction(s). Balance is now -1200.00." in result.stderr
    with connect(app_config, read_only=True) as connection:
        account = get_account(connection, account_id)
    assert account is not None and account.balance == Decimal("-1200.00")
