"""fin-ingest-text CLI entrypoint."""

from __future__ import annotations

from collections.abc import Sequence

import click

from fin_ingest.ingest_csv.types import ParsedTransactionCandidate
from fin_ingest.ledger.writer import CommitResult, ReconciliationWriter, select_target_account
from fin_ingest.shared.cli import CLIContext, common_cli_options, handle_cli_errors
from fin_ingest.shared.database import connect
from fin_ingest.shared.models import ACCOUNT_OWNER_TYPES
from fin_ingest.shared.render import render_table, write_json

from .ingestor import ingest_text
from .loader import load_statement_text
from .patterns import REGISTRY
from .types import TextIngestResult


@click.command(help="Preview or import transactions from statement text (PDF or .txt).")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option(
    "--pattern",
    "pattern_names",
    multiple=True,
    help="Line pattern(s) to try, in order (default: from config).",
)
@click.option(
    "--account-type",
    type=click.Choice(ACCOUNT_OWNER_TYPES),
    default="personal",
    show_default=True,
    help="Which accounts may receive the import.",
)
@click.option("--account", "account_id", type=int, help="Target account id (required with --commit).")
@click.option("--commit", is_flag=True, help="Import the recovered transactions into the target account.")
@click.option("--json", "as_json", is_flag=True, help="Emit the result as JSON on stdout.")
@click.option("--show-raw", is_flag=True, help="Print the start of the extracted text to stderr.")
@click.option("--show-skipped", is_flag=True, help="List date-led lines that could not be parsed.")
@common_cli_options
@handle_cli_errors
def main(
    statement_file: str,
    pattern_names: tuple[str, ...],
    account_type: str,
    account_id: int | None,
    commit: bool,
    as_json: bool,
    show_raw: bool,
    show_skipped: bool,
    cli_ctx: CLIContext,
) -> None:
    settings = cli_ctx.config.statement_text
    names = tuple(name.lower() for name in pattern_names) or settings.patterns
    unknown = [name for name in names if name not in REGISTRY.names()]
    if unknown:
        raise click.UsageError(
            f"Unknown pattern(s): {', '.join(unknown)}. Available: {', '.join(REGISTRY.names())}"
        )

    if commit:
        with connect(cli_ctx.config, read_only=cli_ctx.dry_run) as connection:
            account = select_target_account(connection, account_id, account_type)
        cli_ctx.logger.debug(f"Target account: {account.name} (#{account.id})")

    text = load_statement_text(statement_file)
    result = ingest_text(text, pattern_names=names, raw_preview_chars=settings.raw_preview_chars)

    if show_raw:
        cli_ctx.logger.info("Extracted text preview:")
        cli_ctx.logger.info(result.raw_preview)

    if as_json:
        write_json(result.to_dict())
    else:
        _render_preview(result, show_skipped=show_skipped)

    if result.pattern_name is None:
        cli_ctx.logger.warning(f"No transactions recognised (tried: {', '.join(names)}).")
    else:
        cli_ctx.logger.info(f"Matched pattern: {result.pattern_name}")
    cli_ctx.logger.info(f"Transactions: {len(result.transactions)}")
    if result.skipped:
        cli_ctx.logger.warning(f"Skipped lines: {len(result.skipped)}")

    if not commit:
        return

    candidates = result.to_candidates(category=cli_ctx.config.imports.default_category)
    if cli_ctx.dry_run:
        cli_ctx.logger.info(
            f"Dry-run: would import {len(candidates)} transaction(s) into account #{account_id}."
        )
        return
    if not candidates:
        cli_ctx.logger.warning("No transactions to import.")
        return

    writer = ReconciliationWriter(cli_ctx.config)
    outcome = writer.commit(account_id, candidates, account_type=account_type)
    _report_commit(cli_ctx, outcome, candidates)


def _render_preview(result: TextIngestResult, *, show_skipped: bool) -> None:
    render_table(
        ("Line", "Date", "Description", "Amount", "Auth"),
        [
            (line.line_number, line.date, line.description, line.amount, line.auth_code)
            for line in result.transactions
        ],
        title=f"Pattern: {result.pattern_name}" if result.pattern_name else None,
    )
    if show_skipped and result.skipped:
        render_table(
            ("Line", "Reason", "Text"),
            [(line.line_number, line.reason, line.text) for line in result.skipped],
            title="Skipped lines",
        )


def _report_commit(
    cli_ctx: CLIContext,
    outcome: CommitResult,
    rows: Sequence[ParsedTransactionCandidate],
) -> None:
    cli_ctx.logger.success(f"Imported {outcome.imported_count} transaction(s).")
    for error in outcome.errors:
        cli_ctx.logger.error(f"Line {rows[error.index].row_number}: {error.message}")
    if outcome.errors:
        cli_ctx.logger.warning(f"{outcome.error_count} line(s) failed to import.")
