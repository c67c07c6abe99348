"""Tabular statement ingestion: parse, classify, map, validate."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from fin_ingest.shared.config import ImportSettings
from fin_ingest.shared.exceptions import IngestError, MappingError
from fin_ingest.shared.models import ACCOUNT_OWNER_TYPES

from .headers import (
    DEFAULT_CATEGORY,
    HEADER_KEYWORDS,
    HEADER_MIN_MATCHES,
    ROLE_KEYWORDS,
    infer_mapping,
    looks_like_header_row,
    merge_keywords,
    merge_role_keywords,
)
from .normalizers import normalize_amount, normalize_date
from .table import HeaderSplit, RawTable, parse_delimited, split_header
from .types import ColumnMapping, ColumnRole, ParsedTransactionCandidate, ProjectedRow, RawRow

_log = logging.getLogger(__name__)

INVALID_DATE = "Invalid date"
MISSING_DESCRIPTION = "Missing description"
INVALID_AMOUNT = "Invalid amount"


@dataclass(frozen=True, slots=True)
class IngestOptions:
    """Heuristic tables and policies applied by an ingest session."""

    default_category: str = DEFAULT_CATEGORY
    header_keywords: tuple[str, ...] = HEADER_KEYWORDS
    header_min_matches: int = HEADER_MIN_MATCHES
    role_keywords: Mapping[ColumnRole, tuple[str, ...]] = field(
        default_factory=lambda: dict(ROLE_KEYWORDS)
    )
    drop_zero_amounts: bool = True

    @classmethod
    def from_settings(cls, settings: ImportSettings) -> IngestOptions:
        return cls(
            default_category=settings.default_category,
            header_keywords=merge_keywords(HEADER_KEYWORDS, settings.header_keywords),
            header_min_matches=settings.header_min_matches,
            role_keywords=merge_role_keywords(settings.role_keywords),
            drop_zero_amounts=settings.drop_zero_amounts,
        )


@dataclass(slots=True)
class IngestResult:
    rows: list[ParsedTransactionCandidate]
    headers: tuple[str, ...]
    mapping: ColumnMapping
    has_header: bool
    account_type: str | None = None

    @property
    def valid_count(self) -> int:
        return sum(1 for row in self.rows if row.is_valid)

    @property
    def invalid_count(self) -> int:
        return sum(1 for row in self.rows if not row.is_valid)

    def valid_rows(self) -> list[ParsedTransactionCandidate]:
        return [row for row in self.rows if row.is_valid]

    def invalid_rows(self) -> list[ParsedTransactionCandidate]:
        return [row for row in self.rows if not row.is_valid]

    def to_dict(self) -> dict[str, object]:
        return {
            "account_type": self.account_type,
            "has_header": self.has_header,
            "headers": list(self.headers),
            "mapping": self.mapping.as_dict(),
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "rows": [row.to_dict() for row in self.rows],
        }


def _cell(row: RawRow, index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return (row[index] or "").strip()


def project(row: RawRow, mapping: ColumnMapping) -> ProjectedRow:
    """Pull the mapped cells out of a raw row."""
    return ProjectedRow(
        date_text=_cell(row, mapping.date),
        description_text=_cell(row, mapping.description),
        amount_text=_cell(row, mapping.amount),
        category_text=_cell(row, mapping.category),
    )


def build_candidate(
    row_number: int,
    projected: ProjectedRow,
    *,
    default_category: str = DEFAULT_CATEGORY,
) -> ParsedTransactionCandidate:
    normalized_date = normalize_date(projected.date_text)
    amount = normalize_amount(projected.amount_text)

    errors: list[str] = []
    if normalized_date is None:
        errors.append(INVALID_DATE)
    if not projected.description_text:
        errors.append(MISSING_DESCRIPTION)
    if amount is None:
        errors.append(INVALID_AMOUNT)

    return ParsedTransactionCandidate(
        row_number=row_number,
        date=normalized_date or projected.date_text,
        description=projected.description_text,
        amount=amount if amount is not None else Decimal("0"),
        category=projected.category_text or default_category,
        errors=tuple(errors),
    )


def validate_mapping(mapping: ColumnMapping) -> None:
    missing = mapping.missing_required()
    if missing:
        names = ", ".join(role.value for role in missing)
        raise MappingError(f"Column mapping is missing required role(s): {names}")
    assigned = [index for index in mapping.as_dict().values() if index is not None]
    if len(assigned) != len(set(assigned)):
        raise MappingError("Column mapping assigns one column to more than one role")


def _is_authorization_hold(candidate: ParsedTransactionCandidate) -> bool:
    return candidate.is_valid and candidate.amount == 0


class IngestSession:
    """Holds one parsed upload so header and mapping choices can be revised.

    Changing the header flag or the mapping re-runs validation over the same
    :class:`RawTable`; the upload is never parsed twice.
    """

    def __init__(
        self,
        table: RawTable,
        *,
        options: IngestOptions | None = None,
        has_header: bool | None = None,
        mapping: ColumnMapping | None = None,
    ) -> None:
        self.table = table
        self.options = options or IngestOptions()
        detected = (
            looks_like_header_row(
                table.rows[0],
                self.options.header_keywords,
                min_matches=self.options.header_min_matches,
            )
            if table.rows
            else False
        )
        self.detected_header = detected
        self._split: HeaderSplit = split_header(table, detected if has_header is None else has_header)
        self.inferred_mapping = self._infer()
        self.mapping = mapping if mapping is not None else self.inferred_mapping

    @classmethod
    def from_bytes(
        cls,
        data: bytes | str,
        *,
        source_name: str = "upload",
        options: IngestOptions | None = None,
        has_header: bool | None = None,
        mapping: ColumnMapping | None = None,
    ) -> IngestSession:
        return cls(
            parse_delimited(data, source_name=source_name),
            options=options,
            has_header=has_header,
            mapping=mapping,
        )

    @property
    def headers(self) -> tuple[str, ...]:
        return self._split.headers

    @property
    def has_header(self) -> bool:
        return self._split.has_header

    @property
    def data_rows(self) -> list[RawRow]:
        return self._split.data_rows

    def _infer(self) -> ColumnMapping:
        sample = None
        if not self._split.has_header and self._split.data_rows:
            sample = self._split.data_rows[0]
        return infer_mapping(self._split.headers, sample, role_keywords=self.options.role_keywords)

    def set_has_header(self, has_header: bool) -> ColumnMapping:
        """Move the header boundary and re-infer the mapping for the new layout."""
        if has_header == self._split.has_header:
            return self.mapping
        self._split = split_header(self.table, has_header)
        self.inferred_mapping = self._infer()
        self.mapping = self.inferred_mapping
        _log.debug("Header flag set to %s; mapping re-inferred as %s", has_header, self.mapping.as_dict())
        return self.mapping

    def apply_mapping(self, mapping: ColumnMapping) -> None:
        self.mapping = mapping

    def override(self, assignments: Mapping[str, str | int]) -> ColumnMapping:
        """Apply ``role -> column`` overrides on top of the current mapping."""
        self.mapping = ColumnMapping.from_assignments(assignments, self.headers, base=self.mapping)
        return self.mapping

    def run(self, *, account_type: str | None = None) -> IngestResult:
        validate_mapping(self.mapping)
        candidates: list[ParsedTransactionCandidate] = []
        for number, row in zip(self._split.data_row_numbers, self._split.data_rows):
            candidate = build_candidate(
                number,
                project(row, self.mapping),
                default_category=self.options.default_category,
            )
            if self.options.drop_zero_amounts and _is_authorization_hold(candidate):
                _log.debug("Dropping zero-amount row %s (%s)", number, candidate.description)
                continue
            candidates.append(candidate)
        return IngestResult(
            rows=candidates,
            headers=self.headers,
            mapping=self.mapping,
            has_header=self.has_header,
            account_type=account_type,
        )


def _check_account_type(account_type: str | None) -> None:
    if account_type is not None and account_type not in ACCOUNT_OWNER_TYPES:
        raise IngestError(
            f"Unsupported account type '{account_type}'. Expected one of: "
            + ", ".join(ACCOUNT_OWNER_TYPES)
        )


def ingest(
    data: bytes | str,
    account_type: str | None = None,
    *,
    mapping: ColumnMapping | Mapping[str, str | int] | None = None,
    has_header: bool | None = None,
    options: IngestOptions | None = None,
    source_name: str = "upload",
) -> IngestResult:
    """Parse and validate a delimited upload in one call.

    ``account_type`` only labels the result (it decides which accounts are
    offered as commit targets). ``mapping`` may be a :class:`ColumnMapping` or
    ``role -> column`` overrides applied on top of the inferred mapping.
    """

    _check_account_type(account_type)
    session = IngestSession.from_bytes(
        data,
        source_name=source_name,
        options=options,
        has_header=has_header,
    )
    if isinstance(mapping, ColumnMapping):
        session.apply_mapping(mapping)
    elif mapping:
        session.override(mapping)
    return session.run(account_type=account_type)

