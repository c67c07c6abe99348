"""Commit validated candidates as ledger transactions.

Each row is inserted and applied to its account's balance inside one SQLite
``BEGIN IMMEDIATE`` transaction, while an in-process lock keyed by account id
keeps threads in this process from contending for the same account. Rows are
independent: a failing row is recorded and the batch moves on.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal

from fin_ingest.ingest_csv.types import ParsedTransactionCandidate
from fin_ingest.shared.config import AppConfig
from fin_ingest.shared.database import connect, immediate_transaction
from fin_ingest.shared.exceptions import AccountSelectionError, DatabaseError
from fin_ingest.shared.models import (
    Account,
    Transaction,
    adjust_account_balance,
    delete_transactions,
    get_account,
    insert_transaction,
    list_transactions,
    quantize_amount,
)

_log = logging.getLogger(__name__)


class AccountLocks:
    """One re-usable mutex per account id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, account_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, account_id: int, *, timeout: float = -1) -> Iterator[None]:
        lock = self._lock_for(account_id)
        if not lock.acquire(timeout=timeout):
            raise DatabaseError(f"Timed out waiting for account {account_id}")
        try:
            yield
        finally:
            lock.release()


ACCOUNT_LOCKS = AccountLocks()


@dataclass(frozen=True, slots=True)
class RowError:
    index: int
    message: str

    def to_dict(self) -> dict[str, object]:
        return {"index": self.index, "error": self.message}


@dataclass(slots=True)
class CommitResult:
    transaction_ids: list[int] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    stopped: bool = False

    @property
    def imported_count(self) -> int:
        return len(self.transaction_ids)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, object]:
        return {
            "imported": self.imported_count,
            "errors": self.error_count,
            "details": [error.to_dict() for error in self.errors],
            "stopped": self.stopped,
        }


def build_transaction(account_id: int, candidate: ParsedTransactionCandidate) -> Transaction:
    """Turn a valid candidate into the ledger record the store will persist."""
    return Transaction(
        account_id=account_id,
        description=candidate.description,
        amount=quantize_amount(candidate.amount),
        category=candidate.direction,
        subcategory=candidate.category,
        date=candidate.date,
    )


def select_target_account(
    connection: sqlite3.Connection,
    account_id: int | None,
    account_type: str | None = None,
) -> Account:
    """Resolve the commit target, refusing a missing or mismatched account."""
    if account_id is None:
        raise AccountSelectionError("Select a target account before importing transactions")
    account = get_account(connection, account_id)
    if account is None:
        raise AccountSelectionError(f"Account {account_id} does not exist")
    if account_type is not None and account.owner_type != account_type:
        raise AccountSelectionError(
            f"Account {account_id} ({account.name}) is a {account.owner_type} account, "
            f"not {account_type}"
        )
    return account


class ReconciliationWriter:
    """Commit candidate rows and keep account balances in step."""

    def __init__(self, config: AppConfig, *, locks: AccountLocks = ACCOUNT_LOCKS) -> None:
        self.config = config
        self.locks = locks
        self.timeout = config.ledger.commit_timeout_seconds

    def commit(
        self,
        account_id: int,
        rows: Sequence[ParsedTransactionCandidate],
        *,
        account_type: str | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> CommitResult:
        result = CommitResult()
        with connect(self.config, autocommit=True) as connection:
            select_target_account(connection, account_id, account_type)
            for index, candidate in enumerate(rows):
                if should_stop is not None and should_stop():
                    _log.info("Commit stopped after %d of %d row(s)", index, len(rows))
                    result.stopped = True
                    break
                try:
                    transaction_id = self._commit_row(connection, account_id, candidate)
                except (DatabaseError, sqlite3.Error) as exc:
                    _log.warning("Row %d (%s) not imported: %s", index, candidate.description, exc)
                    result.errors.append(RowError(index=index, message=str(exc)))
                    continue
                result.transaction_ids.append(transaction_id)
        return result

    def _commit_row(
        self,
        connection: sqlite3.Connection,
        account_id: int,
        candidate: ParsedTransactionCandidate,
    ) -> int:
        if not candidate.is_valid:
            raise DatabaseError(f"Row is not valid: {', '.join(candidate.errors)}")
        transaction = build_transaction(account_id, candidate)
        with self.locks.hold(account_id, timeout=self.timeout), immediate_transaction(connection):
            transaction_id = insert_transaction(connection, transaction)
            adjust_account_balance(connection, account_id, transaction.amount)
        return transaction_id

    def delete_range(self, account_id: int, start_date: str, end_date: str) -> int:
        """Delete an account's transactions in ``[start_date, end_date]``.

        The deleted amounts are backed out of the account balance in the same
        write transaction.
        """
        if start_date > end_date:
            raise DatabaseError(f"Start date {start_date} is after end date {end_date}")
        with connect(self.config, autocommit=True) as connection:
            select_target_account(connection, account_id)
            with self.locks.hold(account_id, timeout=self.timeout), immediate_transaction(connection):
                doomed = list_transactions(
                    connection, account_id, start_date=start_date, end_date=end_date
                )
                deleted = delete_transactions(connection, [txn.id for txn in doomed if txn.id is not None])
                reversal = -sum((txn.amount for txn in doomed), start=Decimal("0"))
                if deleted:
                    adjust_account_balance(connection, account_id, reversal)
        _log.info("Deleted %d transaction(s) from account %d", deleted, account_id)
        return deleted
