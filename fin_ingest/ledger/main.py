"""fin-ledger CLI entrypoint."""

from __future__ import annotations

from decimal import Decimal

import click

from fin_ingest.ingest_csv.normalizers import normalize_amount, normalize_date
from fin_ingest.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from fin_ingest.shared.database import connect
from fin_ingest.shared.models import (
    ACCOUNT_CATEGORIES,
    ACCOUNT_OWNER_TYPES,
    create_account,
    format_amount,
    get_account,
    list_accounts,
    list_transactions,
)
from fin_ingest.shared.render import render_table, write_json

from .writer import ReconciliationWriter, select_target_account


@click.group(help="Manage accounts and ledger transactions.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for fin-ledger commands."""
    cli_ctx.logger.debug(f"Using database at {cli_ctx.db_path}")


@cli.command("add-account")
@click.argument("name", type=str)
@click.option(
    "--type",
    "owner_type",
    type=click.Choice(ACCOUNT_OWNER_TYPES),
    default="personal",
    show_default=True,
)
@click.option(
    "--category",
    type=click.Choice(ACCOUNT_CATEGORIES),
    default="checking",
    show_default=True,
)
@click.option("--balance", "opening_balance", default="0", show_default=True, help="Opening balance.")
@pass_cli_context
@handle_cli_errors
def add_account(
    cli_ctx: CLIContext,
    name: str,
    owner_type: str,
    category: str,
    opening_balance: str,
) -> None:
    """Create an account that imports can target."""
    if not name.strip():
        raise click.BadParameter("Account name must not be empty.", param_hint="NAME")
    balance = normalize_amount(opening_balance)
    if balance is None:
        raise click.BadParameter(f"'{opening_balance}' is not an amount.", param_hint="--balance")

    if cli_ctx.dry_run:
        cli_ctx.logger.info(
            f"Dry-run: would create {owner_type} {category} account '{name}' "
            f"with balance {format_amount(balance)}."
        )
        return

    with connect(cli_ctx.config) as connection:
        account_id = create_account(
            connection,
            name=name,
            owner_type=owner_type,
            category=category,
            balance=balance,
        )
        connection.commit()
    cli_ctx.logger.success(f"Created account #{account_id}: {name.strip()}")


@cli.command("accounts")
@click.option("--type", "owner_type", type=click.Choice(ACCOUNT_OWNER_TYPES), help="Only this account type.")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of a table.")
@pass_cli_context
@handle_cli_errors
def accounts(cli_ctx: CLIContext, owner_type: str | None, as_json: bool) -> None:
    """List accounts (the targets offered for an import of that type)."""
    with connect(cli_ctx.config, apply_migrations=not cli_ctx.dry_run) as connection:
        rows = list_accounts(connection, owner_type=owner_type)

    if as_json:
        write_json(
            [
                {
                    "id": account.id,
                    "name": account.name,
                    "owner_type": account.owner_type,
                    "category": account.category,
                    "balance": format_amount(account.balance),
                }
                for account in rows
            ]
        )
        return
    if not rows:
        cli_ctx.logger.warning("No accounts found.")
        return
    render_table(
        ("ID", "Name", "Type", "Category", "Balance"),
        [
            (account.id, account.name, account.owner_type, account.category, format_amount(account.balance))
            for account in rows
        ],
    )


@cli.command("transactions")
@click.argument("account_id", type=int)
@click.option("--from", "start", help="Earliest date (inclusive).")
@click.option("--to", "end", help="Latest date (inclusive).")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON instead of a table.")
@pass_cli_context
@handle_cli_errors
def transactions(
    cli_ctx: CLIContext,
    account_id: int,
    start: str | None,
    end: str | None,
    as_json: bool,
) -> None:
    """List an account's transactions in date order."""
    start_date = _parse_date_option(start, "--from")
    end_date = _parse_date_option(end, "--to")
    with connect(cli_ctx.config, apply_migrations=not cli_ctx.dry_run) as connection:
        account = select_target_account(connection, account_id)
        rows = list_transactions(connection, account_id, start_date=start_date, end_date=end_date)

    if as_json:
        write_json(
            {
                "account_id": account.id,
                "balance": format_amount(account.balance),
                "transactions": [
                    {
                        "id": txn.id,
                        "date": txn.date,
                        "description": txn.description,
                        "amount": format_amount(txn.amount),
                        "category": txn.category,
                        "subcategory": txn.subcategory,
                    }
                    for txn in rows
                ],
            }
        )
        return
    render_table(
        ("ID", "Date", "Description", "Amount", "Category", "Subcategory"),
        [
            (txn.id, txn.date, txn.description, format_amount(txn.amount), txn.category, txn.subcategory)
            for txn in rows
        ],
        title=f"{account.name} (balance {format_amount(account.balance)})",
    )
    total = sum((txn.amount for txn in rows), start=Decimal("0"))
    cli_ctx.logger.info(f"{len(rows)} transaction(s), net {format_amount(total)}")


@cli.command("delete-range")
@click.argument("account_id", type=int)
@click.option("--from", "start", required=True, help="Earliest date (inclusive).")
@click.option("--to", "end", required=True, help="Latest date (inclusive).")
@pass_cli_context
@handle_cli_errors
def delete_range(cli_ctx: CLIContext, account_id: int, start: str, end: str) -> None:
    """Remove an account's transactions in a date window and back them out of its balance."""
    start_date = _parse_date_option(start, "--from")
    end_date = _parse_date_option(end, "--to")

    if cli_ctx.dry_run:
        with connect(cli_ctx.config, apply_migrations=False) as connection:
            select_target_account(connection, account_id)
            doomed = list_transactions(connection, account_id, start_date=start_date, end_date=end_date)
        cli_ctx.logger.info(
            f"Dry-run: would delete {len(doomed)} transaction(s) from account #{account_id}."
        )
        return

    writer = ReconciliationWriter(cli_ctx.config)
    deleted = writer.delete_range(account_id, start_date, end_date)
    with connect(cli_ctx.config, read_only=True) as connection:
        account = get_account(connection, account_id)
    balance = format_amount(account.balance) if account else "?"
    cli_ctx.logger.success(f"Deleted {deleted} transaction(s). Balance is now {balance}.")


def _parse_date_option(value: str | None, option: str) -> str | None:
    if value is None:
        return None
    normalized = normalize_date(value)
    if normalized is None:
        raise click.BadParameter(f"'{value}' is not a date.", param_hint=option)
    return normalized
