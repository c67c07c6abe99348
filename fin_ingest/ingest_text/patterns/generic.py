"""Fallback pattern for date-led statement lines."""

from __future__ import annotations

import re
from datetime import date

from fin_ingest.ingest_csv.normalizers import normalize_amount

from ..types import SkippedLine, StatementLine
from .base import LineOutcome, StatementPattern

# (regex, group order) for the date prefixes we accept at line start.
_DATE_PREFIXES: tuple[tuple[re.Pattern[str], tuple[str, str, str]], ...] = (
    (re.compile(r"^(\d{2})/(\d{2})/(\d{4})(?=\s|$)"), ("month", "day", "year")),
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?=\s|$)"), ("year", "month", "day")),
    (re.compile(r"^(\d{2})-(\d{2})-(\d{4})(?=\s|$)"), ("month", "day", "year")),
)

_AMOUNT_TOKEN_RE = re.compile(
    r"(?<!\S)(?:-\$?|\$-?)?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?(?!\S)"
)
_AUTH_PREFIX_RE = re.compile(r"^\d+\s+")


def _match_date(line: str) -> tuple[str | None, int] | None:
    for pattern, order in _DATE_PREFIXES:
        match = pattern.match(line)
        if not match:
            continue
        parts = dict(zip(order, (int(group) for group in match.groups())))
        try:
            value = date(parts["year"], parts["month"], parts["day"])
        except ValueError:
            return None, match.end()
        return value.isoformat(), match.end()
    return None


def _amount_tokens(text: str) -> list[re.Match[str]]:
    # Bare integers are usually auth codes or reference numbers.
    return [
        match
        for match in _AMOUNT_TOKEN_RE.finditer(text)
        if "." in match.group() or "$" in match.group()
    ]


class GenericPattern(StatementPattern):
    name = "generic"

    def parse_line(self, line: str, line_number: int) -> LineOutcome:
        dated = _match_date(line)
        if dated is None:
            return None
        iso_date, date_end = dated
        if iso_date is None:
            return SkippedLine(line_number, line, "Invalid date")
        remainder = line[date_end:]

        tokens = _amount_tokens(remainder)
        if not tokens:
            return SkippedLine(line_number, line, "No amount found")

        amount = normalize_amount(tokens[0].group())
        if amount is None:
            return SkippedLine(line_number, line, "Invalid amount")

        # Everything after the first amount is trailing amounts or a balance.
        description = remainder[: tokens[0].start()].strip()
        description = _AUTH_PREFIX_RE.sub("", description).strip()
        if not description:
            return SkippedLine(line_number, line, "Missing description")

        return StatementLine(
            line_number=line_number,
            date=iso_date,
            description=description,
            amount=amount,
        )
