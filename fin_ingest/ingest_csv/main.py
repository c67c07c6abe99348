"""fin-ingest-csv CLI entrypoint."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

import click

from fin_ingest.ledger.writer import CommitResult, ReconciliationWriter, select_target_account
from fin_ingest.shared.cli import CLIContext, common_cli_options, handle_cli_errors
from fin_ingest.shared.database import connect
from fin_ingest.shared.models import ACCOUNT_OWNER_TYPES
from fin_ingest.shared.render import render_table, write_json

from .ingestor import IngestOptions, IngestResult, IngestSession
from .types import MAPPABLE_ROLES, ColumnMapping, ParsedTransactionCandidate


@click.command(help="Preview or import a bank/credit-card CSV statement.")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option(
    "--account-type",
    type=click.Choice(ACCOUNT_OWNER_TYPES),
    default="personal",
    show_default=True,
    help="Which accounts may receive the import.",
)
@click.option("--account", "account_id", type=int, help="Target account id (required with --commit).")
@click.option(
    "--header/--no-header",
    "has_header",
    default=None,
    help="Override header-row detection for the first row.",
)
@click.option(
    "--map",
    "assignments",
    multiple=True,
    metavar="ROLE=COLUMN",
    help="Map a role (date, description, amount, category) to a 0-based column index or header label.",
)
@click.option("--commit", is_flag=True, help="Import the valid rows into the target account.")
@click.option("--json", "as_json", is_flag=True, help="Emit the preview as JSON on stdout.")
@click.option("--invalid-only", is_flag=True, help="Only list rows that failed validation.")
@common_cli_options
@handle_cli_errors
def main(
    csv_file: str,
    account_type: str,
    account_id: int | None,
    has_header: bool | None,
    assignments: tuple[str, ...],
    commit: bool,
    as_json: bool,
    invalid_only: bool,
    cli_ctx: CLIContext,
) -> None:
    overrides = _parse_assignments(assignments)

    if commit:
        # Refuse up front; no row is processed without a usable target account.
        with connect(cli_ctx.config, read_only=cli_ctx.dry_run) as connection:
            account = select_target_account(connection, account_id, account_type)
        cli_ctx.logger.debug(f"Target account: {account.name} (#{account.id})")

    session = IngestSession.from_bytes(
        Path(csv_file).read_bytes(),
        source_name=csv_file,
        options=IngestOptions.from_settings(cli_ctx.config.imports),
        has_header=has_header,
    )
    cli_ctx.logger.debug(
        f"Header row detected: {'yes' if session.detected_header else 'no'}; "
        f"inferred mapping: {_describe_mapping(session.inferred_mapping, session.headers)}"
    )
    if overrides:
        session.override(overrides)
    cli_ctx.logger.info(f"Column mapping: {_describe_mapping(session.mapping, session.headers)}")

    result = session.run(account_type=account_type)

    if as_json:
        write_json(result.to_dict())
    else:
        _render_preview(result, invalid_only=invalid_only)

    cli_ctx.logger.info(f"Valid rows: {result.valid_count}")
    if result.invalid_count:
        cli_ctx.logger.warning(f"Invalid rows: {result.invalid_count}")
    else:
        cli_ctx.logger.info("Invalid rows: 0")

    if not commit:
        return

    valid_rows = result.valid_rows()
    if cli_ctx.dry_run:
        cli_ctx.logger.info(
            f"Dry-run: would import {len(valid_rows)} transaction(s) into account #{account_id}."
        )
        return
    if not valid_rows:
        cli_ctx.logger.warning("No valid rows to import.")
        return

    writer = ReconciliationWriter(cli_ctx.config)
    outcome = writer.commit(account_id, valid_rows, account_type=account_type)
    _report_commit(cli_ctx, outcome, valid_rows)


def _parse_assignments(values: Iterable[str]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for raw in values:
        if "=" not in raw:
            raise click.UsageError(f"Invalid --map value '{raw}'. Expected ROLE=COLUMN.")
        role, column = raw.split("=", 1)
        role = role.strip().lower()
        if not role or not column.strip():
            raise click.UsageError(f"Invalid --map value '{raw}'. Expected ROLE=COLUMN.")
        parsed[role] = column.strip()
    return parsed


def _describe_mapping(mapping: ColumnMapping, headers: Sequence[str]) -> str:
    parts: list[str] = []
    for role in MAPPABLE_ROLES:
        index = mapping.index_for(role)
        if index is None:
            label = "-"
        elif index < len(headers):
            label = f"{headers[index]} [{index}]"
        else:
            label = f"[{index}]"
        parts.append(f"{role.value}={label}")
    return ", ".join(parts)


def _render_preview(result: IngestResult, *, invalid_only: bool) -> None:
    rows = result.invalid_rows() if invalid_only else result.rows
    render_table(
        ("Row", "Date", "Description", "Amount", "Category", "Type", "Status"),
        [_preview_row(row) for row in rows],
    )


def _preview_row(row: ParsedTransactionCandidate) -> tuple[object, ...]:
    status = "ok" if row.is_valid else ", ".join(row.errors)
    return (
        row.row_number,
        row.date,
        row.description,
        row.amount,
        row.category,
        row.direction if row.is_valid else "",
        status,
    )


def _report_commit(
    cli_ctx: CLIContext,
    outcome: CommitResult,
    rows: Sequence[ParsedTransactionCandidate],
) -> None:
    cli_ctx.logger.success(f"Imported {outcome.imported_count} transaction(s).")
    for error in outcome.errors:
        cli_ctx.logger.error(f"Row {rows[error.index].row_number}: {error.message}")
    if outcome.errors:
        cli_ctx.logger.warning(f"{outcome.error_count} row(s) failed to import.")
