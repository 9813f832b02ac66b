"""Command-line interface for cashbook."""

import logging
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from cashbook import __version__
from cashbook.config import get_settings, validate_all_settings
from cashbook.models.account import Account
from cashbook.models.recurring import RecurrenceFrequency, RecurringRule
from cashbook.models.transaction import TransactionType
from cashbook.orchestrator import AccountsManager, create_app_components
from cashbook.services.storage import StorageError


data_dir_option = click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding accounts.json and the audit log (overrides CASHBOOK_STORAGE_DATA_DIR)",
)


def _open(data_dir: Optional[Path]) -> AccountsManager:
    """Load the accounts and bring recurring rules up to date."""
    try:
        manager = create_app_components(data_dir=data_dir)
        manager.process_recurring_transactions()
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    return manager


def _select(manager: AccountsManager, name: str) -> Account:
    account = manager.find_account(name)
    if account is None:
        click.echo(f"Error: Account '{name}' not found", err=True)
        sys.exit(1)
    manager.select_account(account.id)
    return account


def _format_amount(amount: Decimal) -> str:
    return f"{amount:+.2f}"


def _parse_amount(ctx, param, value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise click.BadParameter(f"{value!r} is not a number") from e
    if not amount.is_finite():
        raise click.BadParameter(f"{value!r} is not a finite number")
    return amount


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(version=__version__)
def main(verbose: bool):
    """Cashbook - accounts, potential transactions and recurring rules."""
    results = validate_all_settings()
    for name in ("storage", "recurrence", "app"):
        if not results[name]:
            click.echo(f"Error: Invalid {name} settings: {results[f'{name}_error']}", err=True)
            sys.exit(1)

    level = logging.DEBUG if verbose else getattr(logging, get_settings().app.log_level)
    logging.basicConfig(level=level, format="%(message)s")


@main.command()
@data_dir_option
def process(data_dir: Optional[Path]):
    """Generate due recurring occurrences and validate those whose day has come."""
    try:
        manager = create_app_components(data_dir=data_dir)
        changed = manager.process_recurring_transactions()
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if changed:
        click.echo("Recurring transactions updated.")
    else:
        click.echo("Nothing to do.")


@main.command()
@data_dir_option
def summary(data_dir: Optional[Path]):
    """Show current and projected balance of every account."""
    manager = _open(data_dir)
    accounts = manager.get_all_accounts()
    if not accounts:
        click.echo("No accounts found")
        return

    name_width = max(len("Account"), max(len(a.name) for a in accounts))
    click.echo(f"{'Account':<{name_width}}  {'Balance':>12}  {'Projected':>12}  {'Pending':>7}")
    click.echo("-" * (name_width + 39))
    for account in accounts:
        info = manager.summary(account.id)
        click.echo(
            f"{account.name:<{name_width}}  "
            f"{_format_amount(info.current_balance):>12}  "
            f"{_format_amount(info.projected_balance):>12}  "
            f"{info.potential_count:>7}"
        )


@main.command(name="add-account")
@click.argument("name")
@click.option("--detail", default="", help="Free text shown under the account name")
@data_dir_option
def add_account(name: str, detail: str, data_dir: Optional[Path]):
    """Create an account called NAME."""
    manager = _open(data_dir)
    if manager.find_account(name) is not None:
        click.echo(f"Error: Account '{name}' already exists", err=True)
        sys.exit(1)
    try:
        account = Account(name=name, detail=detail)
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    manager.add_account(account)
    click.echo(f"Created account '{account.name}' ({account.style.label})")


@main.command(name="add-rule")
@click.argument("account")
@click.argument("amount", callback=_parse_amount)
@click.option(
    "--type",
    "type_",
    type=click.Choice([t.value for t in TransactionType]),
    default=TransactionType.EXPENSE.value,
    show_default=True,
)
@click.option(
    "--frequency",
    type=click.Choice([f.value for f in RecurrenceFrequency]),
    default=RecurrenceFrequency.MONTHLY.value,
    show_default=True,
)
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="First occurrence (YYYY-MM-DD); today when omitted",
)
@click.option("--comment", default="", help="Comment copied onto every occurrence")
@data_dir_option
def add_rule(
    account: str,
    amount: Decimal,
    type_: str,
    frequency: str,
    start: Optional[datetime],
    comment: str,
    data_dir: Optional[Path],
):
    """Add a recurring rule of AMOUNT to ACCOUNT."""
    manager = _open(data_dir)
    selected = _select(manager, account)
    try:
        rule = RecurringRule(
            amount=amount,
            comment=comment,
            type=TransactionType(type_),
            frequency=RecurrenceFrequency(frequency),
            start_date=start.date() if start else manager.today(),
        )
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    manager.add_recurring_rule(rule)
    click.echo(
        f"Added {rule.type.value} of {rule.amount:.2f} to '{selected.name}', "
        f"{rule.frequency.label.lower()} ({rule.category.label})"
    )


@main.command(name="export-csv")
@click.argument("account")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@data_dir_option
def export_csv(account: str, path: Path, data_dir: Optional[Path]):
    """Export the transactions of ACCOUNT to the CSV file PATH."""
    manager = _open(data_dir)
    _select(manager, account)
    count = manager.export_csv(path)
    click.echo(f"Exported {count} transaction(s) to {path}")


@main.command(name="import-csv")
@click.argument("account")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@data_dir_option
def import_csv(account: str, path: Path, data_dir: Optional[Path]):
    """Import transactions from the CSV file PATH into ACCOUNT."""
    manager = _open(data_dir)
    _select(manager, account)
    try:
        count = manager.import_csv(path)
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: Could not read {path}: {e}", err=True)
        sys.exit(1)
    click.echo(f"Imported {count} transaction(s) from {path}")


if __name__ == "__main__":
    main()
