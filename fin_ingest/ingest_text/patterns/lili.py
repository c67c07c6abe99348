"""Lili business-banking export lines.

Layout: ``MM/DD/YYYY AUTHCODE DESCRIPTION AMOUNT RUNNING_BALANCE``.
"""

from __future__ import annotations

import re

from fin_ingest.ingest_csv.normalizers import normalize_amount, normalize_date

from ..types import SkippedLine, StatementLine
from .base import LineOutcome, StatementPattern

_MONEY = r"\$?-?\$?\d[\d,]*(?:\.\d+)?"

_LINE_RE = re.compile(
    r"^(?P<month>\d{2})/(?P<day>\d{2})/(?P<year>\d{4})\s+"
    r"(?P<auth>\d+)\s+"
    r"(?P<description>.+?)\s+"
    rf"(?P<amount>{_MONEY})\s+"
    rf"{_MONEY}$"
)


class LiliPattern(StatementPattern):
    name = "lili"

    def parse_line(self, line: str, line_number: int) -> LineOutcome:
        match = _LINE_RE.match(line)
        if not match:
            return None
        iso_date = normalize_date(f"{match.group('month')}/{match.group('day')}/{match.group('year')}")
        amount = normalize_amount(match.group("amount"))
        if iso_date is None:
            return SkippedLine(line_number, line, "Invalid date")
        if amount is None:
            return SkippedLine(line_number, line, "Invalid amount")
        return StatementLine(
            line_number=line_number,
            date=iso_date,
            description=match.group("description").strip(),
            amount=amount,
            auth_code=match.group("auth"),
        )
