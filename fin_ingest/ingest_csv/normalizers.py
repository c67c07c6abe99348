"""Cell normalizers turning raw statement text into dates and signed amounts."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:$|[\sT])")
_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_CURRENCY_NOISE_RE = re.compile(r"[$£€¥,\s]")
_PARENTHESIZED_RE = re.compile(r"\(([^)]+)\)")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)")
_ZERO_LITERALS = {"0", "0.0"}

# Two distinct defaults expose any component dateutil had to invent.
_FALLBACK_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _iso(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_date(raw: str | None) -> str | None:
    """Return ``YYYY-MM-DD`` for a statement date cell, or ``None``.

    Accepts ISO dates (optionally followed by a time), ``M/D/YYYY``, and
    anything else ``dateutil`` can read when the day, month and year are all
    present in the text. No timezone handling: these are calendar dates.
    """

    text = (raw or "").strip()
    if not text:
        return None

    match = _ISO_DATE_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _iso(year, month, day)

    match = _US_DATE_RE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        return _iso(year, month, day)

    return _fallback_date(text)


def _fallback_date(text: str) -> str | None:
    parsed: list[date] = []
    for default in _FALLBACK_DEFAULTS:
        try:
            parsed.append(date_parser.parse(text, default=default).date())
        except (ValueError, OverflowError):
            return None
    first, second = parsed
    if first != second:
        return None
    return first.isoformat()


def normalize_amount(raw: str | None) -> Decimal | None:
    """Parse a currency cell into a signed ``Decimal``.

    Handles values such as ``$1,234.56``, ``-4.50`` and accounting-style
    ``(123.45)``. Returns ``None`` for blanks and non-numeric text.
    """

    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    if text in _ZERO_LITERALS:
        return Decimal("0")

    cleaned = text.replace("−", "-").replace("–", "-")
    cleaned = _CURRENCY_NOISE_RE.sub("", cleaned)
    cleaned = _PARENTHESIZED_RE.sub(r"-\1", cleaned, count=1)
    if not _NUMBER_RE.fullmatch(cleaned):
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None
