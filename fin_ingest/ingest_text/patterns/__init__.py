"""Built-in statement line patterns, institution-specific first."""

from __future__ import annotations

from .base import LineOutcome, PatternPass, PatternRegistry, StatementPattern
from .generic import GenericPattern
from .lili import LiliPattern

REGISTRY = PatternRegistry([LiliPattern, GenericPattern])


def register_pattern(
    pattern: type[StatementPattern],
    *,
    before: str | None = "generic",
    allow_override: bool = False,
) -> None:
    """Register an institution pattern; by default it runs ahead of the generic fallback."""

    REGISTRY.register(pattern, before=before, allow_override=allow_override)


__all__ = [
    "REGISTRY",
    "GenericPattern",
    "LiliPattern",
    "LineOutcome",
    "PatternPass",
    "PatternRegistry",
    "StatementPattern",
    "register_pattern",
]
