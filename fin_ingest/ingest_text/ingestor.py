"""Run statement line patterns over extracted document text."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .patterns import REGISTRY, PatternPass, PatternRegistry, StatementPattern
from .types import SkippedLine, StatementLine, TextIngestResult

_log = logging.getLogger(__name__)

DEFAULT_RAW_PREVIEW_CHARS = 2000


def run_pattern(pattern: StatementPattern, text: str) -> PatternPass:
    """Apply one pattern to every line of ``text``."""
    transactions: list[StatementLine] = []
    skipped: list[SkippedLine] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        outcome = pattern.parse_line(trimmed, line_number)
        if isinstance(outcome, StatementLine):
            transactions.append(outcome)
        elif isinstance(outcome, SkippedLine):
            skipped.append(outcome)
    return PatternPass(name=pattern.name, transactions=transactions, skipped=skipped)


def ingest_text(
    text: str,
    *,
    pattern_names: Sequence[str] | None = None,
    registry: PatternRegistry = REGISTRY,
    raw_preview_chars: int = DEFAULT_RAW_PREVIEW_CHARS,
) -> TextIngestResult:
    """Recover transactions from statement text.

    Patterns run in registry order (or ``pattern_names`` order); the first one
    that yields any transaction wins and later patterns are not consulted.
    """

    preview = text[:raw_preview_chars] if raw_preview_chars > 0 else ""
    last_pass: PatternPass | None = None
    for pattern_cls in registry.ordered(pattern_names):
        result = run_pattern(pattern_cls(), text)
        if result.transactions:
            _log.debug(
                "Pattern %s matched %d transaction(s), skipped %d line(s)",
                result.name,
                len(result.transactions),
                len(result.skipped),
            )
            return TextIngestResult(
                transactions=result.transactions,
                pattern_name=result.name,
                skipped=result.skipped,
                raw_preview=preview,
            )
        _log.debug("Pattern %s matched nothing; trying next pattern", result.name)
        last_pass = result

    return TextIngestResult(
        transactions=[],
        pattern_name=None,
        skipped=last_pass.skipped if last_pass else [],
        raw_preview=preview,
    )
