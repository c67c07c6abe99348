"""Header detection and column-role inference for tabular statements.

Both decisions are keyword heuristics. The keyword tables below are the
built-in defaults; callers (and the YAML config) may pass extended tables.
Content sniffing for headerless files is an ordered list of
``(role, predicate)`` rules evaluated first-match-wins per column.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Callable

from .normalizers import normalize_date
from .types import ColumnMapping, ColumnRole

DEFAULT_CATEGORY = "Other"
PLACEHOLDER_TEMPLATE = "Column {index}"
DESCRIPTION_FALLBACK_MIN_COLUMNS = 4
HEADER_MIN_MATCHES = 2

HEADER_KEYWORDS: tuple[str, ...] = (
    "timestamp",
    "date",
    "amount",
    "description",
    "merchant",
    "transaction",
    "type",
    "status",
    "note",
    "memo",
    "currency",
)

ROLE_KEYWORDS: Mapping[ColumnRole, tuple[str, ...]] = {
    ColumnRole.DATE: ("date", "timestamp", "posted"),
    ColumnRole.DESCRIPTION: ("description", "memo", "merchant", "payee"),
    ColumnRole.AMOUNT: ("amount", "debit", "credit"),
    ColumnRole.CATEGORY: ("category", "type"),
}

_NUMERIC_CELL_RE = re.compile(r"^-?\d+\.?\d*$")
_LETTER_RE = re.compile(r"[A-Za-z]")

CellPredicate = Callable[[str], bool]


def _looks_like_date(cell: str) -> bool:
    return normalize_date(cell) is not None


def _looks_like_amount(cell: str) -> bool:
    # Alphanumeric reference/auth codes are never amounts.
    if _LETTER_RE.search(cell):
        return False
    return bool(_NUMERIC_CELL_RE.match(cell.replace("$", "").replace(",", "")))


CONTENT_SNIFFERS: tuple[tuple[ColumnRole, CellPredicate], ...] = (
    (ColumnRole.DATE, _looks_like_date),
    (ColumnRole.AMOUNT, _looks_like_amount),
)


def merge_keywords(base: Iterable[str], extra: Iterable[str]) -> tuple[str, ...]:
    """Append extra keywords to a base table, preserving order and skipping repeats."""
    merged: list[str] = []
    for keyword in (*base, *extra):
        lowered = keyword.strip().lower()
        if lowered and lowered not in merged:
            merged.append(lowered)
    return tuple(merged)


def merge_role_keywords(
    extra: Mapping[str, Iterable[str]],
    base: Mapping[ColumnRole, tuple[str, ...]] = ROLE_KEYWORDS,
) -> dict[ColumnRole, tuple[str, ...]]:
    merged = dict(base)
    for role_name, keywords in extra.items():
        role = ColumnRole(role_name)
        merged[role] = merge_keywords(merged.get(role, ()), keywords)
    return merged


def _matches_any(cell: str, keywords: Iterable[str]) -> bool:
    lowered = cell.strip().lower()
    return any(keyword in lowered for keyword in keywords if keyword)


def looks_like_header_row(
    first_row: Sequence[str],
    keywords: Iterable[str] = HEADER_KEYWORDS,
    *,
    min_matches: int = HEADER_MIN_MATCHES,
) -> bool:
    """Return True when enough cells read like column titles."""
    keyword_list = tuple(keywords)
    matches = sum(1 for cell in first_row if cell and _matches_any(cell, keyword_list))
    return matches >= min_matches


def placeholder_headers(count: int) -> list[str]:
    return [PLACEHOLDER_TEMPLATE.format(index=index) for index in range(1, count + 1)]


def sanitize_headers(header_row: Sequence[str], width: int | None = None) -> tuple[str, ...]:
    """Trim header labels, naming blank or missing cells ``Column N``."""
    total = max(len(header_row), width or 0)
    labels: list[str] = []
    for index in range(total):
        cell = header_row[index].strip() if index < len(header_row) and header_row[index] else ""
        labels.append(cell or PLACEHOLDER_TEMPLATE.format(index=index + 1))
    return tuple(labels)


def infer_mapping(
    header_row: Sequence[str],
    sample_row: Sequence[str] | None = None,
    *,
    role_keywords: Mapping[ColumnRole, tuple[str, ...]] = ROLE_KEYWORDS,
) -> ColumnMapping:
    """Guess which column plays which role.

    Header keywords are tried first. When ``sample_row`` is given (headerless
    input) the first data row is sniffed by content, and a wide table with no
    description column falls back to its last column. The result is advisory.
    """

    mapping = ColumnMapping()
    for index, header in enumerate(header_row):
        for role, keywords in role_keywords.items():
            if mapping.index_for(role) is None and _matches_any(header or "", keywords):
                mapping = mapping.with_role(role, index)
                break

    if sample_row is None:
        return mapping

    claimed = {index for index in mapping.as_dict().values() if index is not None}
    for index, cell in enumerate(sample_row):
        trimmed = (cell or "").strip()
        if not trimmed or index in claimed:
            continue
        for role, predicate in CONTENT_SNIFFERS:
            if mapping.index_for(role) is None and predicate(trimmed):
                mapping = mapping.with_role(role, index)
                claimed.add(index)
                break

    if (
        mapping.description is None
        and len(header_row) >= DESCRIPTION_FALLBACK_MIN_COLUMNS
        and len(header_row) - 1 not in claimed
    ):
        mapping = mapping.with_role(ColumnRole.DESCRIPTION, len(header_row) - 1)

    return mapping
