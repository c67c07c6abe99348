from __future__ import annotations

import threading
from decimal import Decimal

import pytest

from fin_ingest.ingest_csv.types import ParsedTransactionCandidate
from fin_ingest.ledger.writer import (
    AccountLocks,
    ReconciliationWriter,
    build_transaction,
    select_target_account,
)
from fin_ingest.shared.database import connect
from fin_ingest.shared.exceptions import AccountSelectionError, DatabaseError
from fin_ingest.shared.models import get_account, list_transactions


def _candidate(row_number: int, amount: str, *, date: str = "2026-01-07", description: str = "Coffee Shop"):
    return ParsedTransactionCandidate(
        row_number=row_number,
        date=date,
        description=description,
        amount=Decimal(amount),
        category="Other",
    )


def _balance(app_config, account_id: int) -> Decimal:
    with connect(app_config, read_only=True) as connection:
        account = get_account(connection, account_id)
    assert account is not None
    return account.balance


def test_build_transaction_derives_category_from_sign() -> None:
    txn = build_transaction(3, _candidate(1, "-4.505"))
    assert txn.category == "expense"
    assert txn.subcategory == "Other"
    assert txn.amount == Decimal("-4.51")
    assert build_transaction(3, _candidate(2, "2500")).category == "income"


def test_commit_inserts_rows_and_updates_balance(app_config, make_account) -> None:
    account_id = make_account(balance="100.00")
    writer = ReconciliationWriter(app_config)

    result = writer.commit(account_id, [_candidate(1, "-4.50"), _candidate(2, "2500.00", description="Paycheck")])

    assert result.imported_count == 2
    assert result.error_count == 0
    assert len(result.transaction_ids) == 2
    assert _balance(app_config, account_id) == Decimal("2595.50")
    with connect(app_config, read_only=True) as connection:
        stored = list_transactions(connection, account_id)
    assert [(t.description, t.category, t.amount) for t in stored] == [
        ("Coffee Shop", "expense", Decimal("-4.50")),
        ("Paycheck", "income", Decimal("2500.00")),
    ]


def test_one_bad_row_does_not_abort_the_batch(app_config, make_account) -> None:
    account_id = make_account()
    writer = ReconciliationWriter(app_config)
    rows = [
        _candidate(1, "-4.50"),
        _candidate(2, "-1.00", date="01/08/2026"),
        ParsedTransactionCandidate(3, "2026-01-09", "", Decimal("0"), "Other", ("Missing description",)),
        _candidate(4, "10.00"),
    ]

    result = writer.commit(account_id, rows)

    assert result.imported_count == 2
    assert [error.index for error in result.errors] == [1, 2]
    assert "not an ISO date" in result.errors[0].message
    assert "Missing description" in result.errors[1].message
    assert _balance(app_config, account_id) == Decimal("5.50")
    with connect(app_config, read_only=True) as connection:
        assert len(list_transactions(connection, account_id)) == 2


def test_commit_fails_fast_without_usable_account(app_config, make_account) -> None:
    writer = ReconciliationWriter(app_config)
    with pytest.raises(AccountSelectionError):
        writer.commit(999, [_candidate(1, "-4.50")])

    business_id = make_account("Ops", owner_type="business")
    with pytest.raises(AccountSelectionError, match="business"):
        writer.commit(business_id, [_candidate(1, "-4.50")], account_type="personal")
    assert _balance(app_config, business_id) == Decimal("0.00")


def test_select_target_account_requires_selection(app_config) -> None:
    with connect(app_config) as connection:
        with pytest.raises(AccountSelectionError, match="Select a target account"):
            select_target_account(connection, None)


def test_should_stop_halts_before_next_row(app_config, make_account) -> None:
    account_id = make_account()
    writer = ReconciliationWriter(app_config)
    seen: list[int] = []

    def stop_after_two() -> bool:
        seen.append(1)
        return len(seen) > 2

    result = writer.commit(account_id, [_candidate(i, "1.00") for i in range(5)], should_stop=stop_after_two)

    assert result.stopped is True
    assert result.imported_count == 2
    assert _balance(app_config, account_id) == Decimal("2.00")


def test_concurrent_batches_do_not_lose_updates(app_config, make_account) -> None:
    account_id = make_account(balance="50.00")
    first = [_candidate(i, "1.25") for i in range(40)]
    second = [_candidate(i, "-0.75", description="Refund reversal") for i in range(30)]
    results = []
    barrier = threading.Barrier(2)

    def run(rows) -> None:
        writer = ReconciliationWriter(app_config, locks=AccountLocks())
        barrier.wait()
        results.append(writer.commit(account_id, rows))

    threads = [threading.Thread(target=run, args=(rows,)) for rows in (first, second)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(result.imported_count for result in results) == 70
    expected = Decimal("50.00") + sum(c.amount for c in first + second)
    assert _balance(app_config, account_id) == expected


def test_account_lock_times_out() -> None:
    locks = AccountLocks()
    with locks.hold(7):
        outcome: list[BaseException] = []

        def contend() -> None:
            try:
                with locks.hold(7, timeout=0.05):
                    pass
            except DatabaseError as exc:
                outcome.append(exc)

        thread = threading.Thread(target=contend)
        thread.start()
        thread.join()
    assert len(outcome) == 1
    with locks.hold(7, timeout=0.05):
        pass


def test_delete_range_reverses_balance(app_config, make_account) -> None:
    account_id = make_account(balance="10.00")
    other_id = make_account("Savings", category="savings")
    writer = ReconciliationWriter(app_config)
    writer.commit(
        account_id,
        [
            _candidate(1, "-4.50", date="2025-12-31"),
            _candidate(2, "-20.00", date="2026-01-01"),
            _candidate(3, "100.00", date="2026-01-31"),
            _candidate(4, "-1.00", date="2026-02-01"),
        ],
    )
    writer.commit(other_id, [_candidate(1, "7.00", date="2026-01-15")])

    deleted = writer.delete_range(account_id, "2026-01-01", "2026-01-31")

    assert deleted == 2
    assert _balance(app_config, account_id) == Decimal("4.50")
    assert _balance(app_config, other_id) == Decimal("7.00")
    with connect(app_config, read_only=True) as connection:
        remaining = [t.date for t in list_transactions(connection, account_id)]
    assert remaining == ["2025-12-31", "2026-02-01"]


def test_delete_range_rejects_inverted_window(app_config, make_account) -> None:
    account_id = make_account()
    with pytest.raises(DatabaseError):
        ReconciliationWriter(app_config).delete_range(account_id, "2026-02-01", "2026-01-01")
