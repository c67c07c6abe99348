"""Dataclasses describing mapped and validated statement rows."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum

from fin_ingest.shared.exceptions import MappingError

RawRow = tuple[str, ...]


class ColumnRole(str, Enum):
    DATE = "date"
    DESCRIPTION = "description"
    AMOUNT = "amount"
    CATEGORY = "category"
    IGNORED = "ignored"


REQUIRED_ROLES = (ColumnRole.DATE, ColumnRole.DESCRIPTION, ColumnRole.AMOUNT)
MAPPABLE_ROLES = (*REQUIRED_ROLES, ColumnRole.CATEGORY)


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Role -> column index. Columns without a role are ignored."""

    date: int | None = None
    description: int | None = None
    amount: int | None = None
    category: int | None = None

    def index_for(self, role: ColumnRole) -> int | None:
        if role is ColumnRole.IGNORED:
            return None
        return getattr(self, role.value)

    def with_role(self, role: ColumnRole, index: int | None) -> ColumnMapping:
        if role is ColumnRole.IGNORED:
            raise MappingError("The ignored role cannot be assigned to a column")
        if index is not None and index < 0:
            raise MappingError(f"Column index for {role.value} must not be negative")
        # A column plays one role; reassigning it releases the previous role.
        changes: dict[str, int | None] = {
            other.value: None
            for other in MAPPABLE_ROLES
            if other is not role and index is not None and self.index_for(other) == index
        }
        changes[role.value] = index
        return replace(self, **changes)

    def role_of(self, index: int) -> ColumnRole:
        for role in MAPPABLE_ROLES:
            if self.index_for(role) == index:
                return role
        return ColumnRole.IGNORED

    def missing_required(self) -> list[ColumnRole]:
        return [role for role in REQUIRED_ROLES if self.index_for(role) is None]

    def as_dict(self) -> dict[str, int | None]:
        return {role.value: self.index_for(role) for role in MAPPABLE_ROLES}

    @classmethod
    def from_assignments(
        cls,
        assignments: Mapping[str, str | int],
        headers: Sequence[str],
        *,
        base: ColumnMapping | None = None,
    ) -> ColumnMapping:
        """Build a mapping from ``role -> column`` pairs.

        A column may be given as a 0-based index or as a header label
        (matched case-insensitively).
        """
        mapping = base or cls()
        lowered = [header.strip().lower() for header in headers]
        for role_name, column in assignments.items():
            try:
                role = ColumnRole(role_name.strip().lower())
            except ValueError as exc:
                raise MappingError(f"Unknown column role '{role_name}'") from exc
            if isinstance(column, int):
                index = column
            elif column.strip().lstrip("-").isdigit():
                index = int(column.strip())
            else:
                label = column.strip().lower()
                if label not in lowered:
                    raise MappingError(f"No column labelled '{column}' for {role.value}")
                index = lowered.index(label)
            mapping = mapping.with_role(role, index)
        return mapping


@dataclass(frozen=True, slots=True)
class ProjectedRow:
    """The mapped cells of one raw row, still as text."""

    date_text: str
    description_text: str
    amount_text: str
    category_text: str


@dataclass(frozen=True, slots=True)
class ParsedTransactionCandidate:
    """A normalized row awaiting user confirmation.

    ``date`` keeps the raw text when it could not be normalized so the preview
    can show what was in the file.
    """

    row_number: int
    date: str
    description: str
    amount: Decimal
    category: str
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def direction(self) -> str:
        """Ledger category hint derived from the sign."""
        return "expense" if self.amount < 0 else "income"

    def to_dict(self) -> dict[str, object]:
        return {
            "row_number": self.row_number,
            "date": self.date,
            "description": self.description,
            "amount": str(self.amount),
            "category": self.category,
            "direction": self.direction if self.is_valid else None,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
        }
