"""Data models and helper functions for database interactions."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import DatabaseError

ACCOUNT_OWNER_TYPES = ("personal", "business")
ACCOUNT_CATEGORIES = ("checking", "savings", "credit_card", "loan", "investment")
TRANSACTION_CATEGORIES = ("income", "expense", "transfer", "payment")

CENTS = Decimal("0.01")


def quantize_amount(value: Decimal) -> Decimal:
    """Round a monetary value to two decimal places."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Render a monetary value as a fixed two-place decimal string."""
    return f"{quantize_amount(value):.2f}"


def _to_decimal(value: str | int | float | Decimal, *, field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise DatabaseError(f"Stored {field} '{value}' is not a decimal number") from exc
    if not result.is_finite():
        raise DatabaseError(f"Stored {field} '{value}' is not a finite number")
    return result


@dataclass(slots=True)
class Account:
    id: int
    name: str
    owner_type: str
    category: str
    balance: Decimal

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Account:
        return cls(
            id=int(row["id"]),
            name=row["name"],
            owner_type=row["owner_type"],
            category=row["category"],
            balance=_to_decimal(row["balance"], field="balance"),
        )


@dataclass(slots=True)
class Transaction:
    account_id: int
    description: str
    amount: Decimal
    category: str
    date: str
    subcategory: str | None = None
    id: int | None = None

    def validate(self) -> None:
        """Reject records the ledger schema would not accept."""
        if not self.description.strip():
            raise DatabaseError("Transaction description is required")
        if self.category not in TRANSACTION_CATEGORIES:
            raise DatabaseError(f"Unsupported transaction category '{self.category}'")
        if not self.amount.is_finite():
            raise DatabaseError(f"Transaction amount '{self.amount}' is not a finite number")
        if len(self.date) != 10 or self.date[4] != "-" or self.date[7] != "-":
            raise DatabaseError(f"Transaction date '{self.date}' is not an ISO date")

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Transaction:
        return cls(
            id=int(row["id"]),
            account_id=int(row["account_id"]),
            description=row["description"],
            amount=_to_decimal(row["amount"], field="amount"),
            category=row["category"],
            subcategory=row["subcategory"],
            date=row["date"],
        )


def create_account(
    connection: sqlite3.Connection,
    *,
    name: str,
    owner_type: str,
    category: str,
    balance: Decimal = Decimal("0"),
) -> int:
    """Insert an account and return its id."""
    if owner_type not in ACCOUNT_OWNER_TYPES:
        raise DatabaseError(f"Unsupported account type '{owner_type}'")
    if category not in ACCOUNT_CATEGORIES:
        raise DatabaseError(f"Unsupported account category '{category}'")
    cursor = connection.execute(
        "INSERT INTO accounts (name, owner_type, category, balance) VALUES (?, ?, ?, ?)",
        (name.strip(), owner_type, category, format_amount(balance)),
    )
    return int(cursor.lastrowid)


def get_account(connection: sqlite3.Connection, account_id: int) -> Account | None:
    row = connection.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
    return Account.from_row(row) if row else None


def list_accounts(
    connection: sqlite3.Connection, *, owner_type: str | None = None
) -> list[Account]:
    """Return accounts, optionally restricted to one owner type."""
    if owner_type is None:
        rows = connection.execute("SELECT * FROM accounts ORDER BY id").fetchall()
    else:
        rows = connection.execute(
            "SELECT * FROM accounts WHERE owner_type = ? ORDER BY id", (owner_type,)
        ).fetchall()
    return [Account.from_row(row) for row in rows]


def insert_transaction(connection: sqlite3.Connection, transaction: Transaction) -> int:
    """Insert a transaction row and return its id."""
    transaction.validate()
    try:
        cursor = connection.execute(
            """
            INSERT INTO transactions (account_id, description, amount, category, subcategory, date)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                transaction.account_id,
                transaction.description,
                format_amount(transaction.amount),
                transaction.category,
                transaction.subcategory,
                transaction.date,
            ),
        )
    except sqlite3.IntegrityError as exc:
        raise DatabaseError(f"Transaction rejected by database: {exc}") from exc
    return int(cursor.lastrowid)


def adjust_account_balance(
    connection: sqlite3.Connection, account_id: int, delta: Decimal
) -> Decimal:
    """Read-modify-write an account balance and return the new value.

    Callers must hold the write lock for the account (see
    ``fin_ingest.shared.database.immediate_transaction``).
    """
    account = get_account(connection, account_id)
    if account is None:
        raise DatabaseError(f"Account {account_id} does not exist")
    new_balance = quantize_amount(account.balance + delta)
    connection.execute(
        "UPDATE accounts SET balance = ? WHERE id = ?",
        (format_amount(new_balance), account_id),
    )
    return new_balance


def list_transactions(
    connection: sqlite3.Connection,
    account_id: int,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[Transaction]:
    clauses = ["account_id = ?"]
    params: list[object] = [account_id]
    if start_date:
        clauses.append("date >= ?")
        params.append(start_date)
    if end_date:
        clauses.append("date <= ?")
        params.append(end_date)
    rows = connection.execute(
        f"SELECT * FROM transactions WHERE {' AND '.join(clauses)} ORDER BY date, id",
        params,
    ).fetchall()
    return [Transaction.from_row(row) for row in rows]


def delete_transactions(connection: sqlite3.Connection, transaction_ids: list[int]) -> int:
    if not transaction_ids:
        return 0
    placeholders = ", ".join("?" for _ in transaction_ids)
    cursor = connection.execute(
        f"DELETE FROM transactions WHERE id IN ({placeholders})", transaction_ids
    )
    return int(cursor.rowcount)
