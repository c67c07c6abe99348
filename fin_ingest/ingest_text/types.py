"""Dataclasses describing transactions recovered from statement text."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal

from fin_ingest.ingest_csv.headers import DEFAULT_CATEGORY
from fin_ingest.ingest_csv.types import ParsedTransactionCandidate


@dataclass(frozen=True, slots=True)
class StatementLine:
    """One transaction pulled from a line of statement text."""

    line_number: int
    date: str
    description: str
    amount: Decimal
    auth_code: str | None = None

    def to_candidate(self, *, category: str = DEFAULT_CATEGORY) -> ParsedTransactionCandidate:
        return ParsedTransactionCandidate(
            row_number=self.line_number,
            date=self.date,
            description=self.description,
            amount=self.amount,
            category=category,
        )

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "line_number": self.line_number,
            "date": self.date,
            "description": self.description,
            "amount": str(self.amount),
        }
        if self.auth_code is not None:
            payload["auth_code"] = self.auth_code
        return payload


@dataclass(frozen=True, slots=True)
class SkippedLine:
    """A date-led line that a pattern recognised but could not parse."""

    line_number: int
    text: str
    reason: str

    def to_dict(self) -> dict[str, object]:
        return {"line_number": self.line_number, "text": self.text, "reason": self.reason}


@dataclass(slots=True)
class TextIngestResult:
    transactions: list[StatementLine]
    pattern_name: str | None = None
    skipped: list[SkippedLine] = field(default_factory=list)
    raw_preview: str = ""

    def __iter__(self) -> Iterator[StatementLine]:
        return iter(self.transactions)

    def __len__(self) -> int:
        return len(self.transactions)

    def to_candidates(self, *, category: str = DEFAULT_CATEGORY) -> list[ParsedTransactionCandidate]:
        return [line.to_candidate(category=category) for line in self.transactions]

    def to_dict(self) -> dict[str, object]:
        return {
            "pattern": self.pattern_name,
            "transactions": [line.to_dict() for line in self.transactions],
            "skipped": [line.to_dict() for line in self.skipped],
            "raw_preview": self.raw_preview,
        }
