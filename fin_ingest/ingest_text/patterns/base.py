"""Base classes for statement line patterns."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..types import SkippedLine, StatementLine

LineOutcome = StatementLine | SkippedLine | None


class StatementPattern(ABC):
    """A line-shape recogniser for one statement layout.

    ``parse_line`` returns a :class:`StatementLine` on success, a
    :class:`SkippedLine` when the line looks like a transaction but cannot be
    parsed, and ``None`` when the line is not of this shape at all.
    """

    name: str = "generic"

    @abstractmethod
    def parse_line(self, line: str, line_number: int) -> LineOutcome:
        """Parse one trimmed line of statement text."""


@dataclass(frozen=True)
class PatternPass:
    """Outcome of running one pattern over a whole document."""

    name: str
    transactions: list[StatementLine]
    skipped: list[SkippedLine]


class PatternRegistry:
    """Ordered pattern registry; earlier patterns take precedence."""

    def __init__(self, patterns: Iterable[type[StatementPattern]]) -> None:
        self._patterns: dict[str, type[StatementPattern]] = {}
        for pattern in patterns:
            self.register(pattern)

    def register(
        self,
        pattern: type[StatementPattern],
        *,
        before: str | None = None,
        allow_override: bool = False,
    ) -> None:
        key = pattern.name.lower()
        if key in self._patterns and not allow_override:
            raise ValueError(f"Statement pattern '{pattern.name}' is already registered")
        entries = [(name, cls) for name, cls in self._patterns.items() if name != key]
        position = len(entries)
        if before is not None:
            names = [name for name, _ in entries]
            if before.lower() not in names:
                raise ValueError(f"Unknown statement pattern '{before}'")
            position = names.index(before.lower())
        entries.insert(position, (key, pattern))
        self._patterns = dict(entries)

    def names(self) -> tuple[str, ...]:
        return tuple(self._patterns)

    def get(self, name: str) -> type[StatementPattern]:
        try:
            return self._patterns[name.lower()]
        except KeyError as exc:
            raise ValueError(f"Unknown statement pattern '{name}'") from exc

    def ordered(self, names: Sequence[str] | None = None) -> list[type[StatementPattern]]:
        if names is None:
            return list(self._patterns.values())
        return [self.get(name) for name in names]
