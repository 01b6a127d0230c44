"""Export command."""

import click
from tally.domain.account import AccountService
from tally.domain.category import CategoryService
from tally.domain.errors import DomainError
from tally.domain.export import export_transactions_csv
from tally.cli.account_resolution import resolve_account_or_exit
from tally.cli.commands.add import parse_date_or_exit
from tally.cli.error_handling import handle_domain_error


@click.command("export")
@click.argument("output", type=click.Path(dir_okay=False, writable=True))
@click.option("--account", help="Only export this account")
@click.option("--start-date", help="Start date")
@click.option("--end-date", help="End date")
@click.pass_context
def export_csv(ctx, output: str, account: str | None, start_date: str | None, end_date: str | None):
    """Export transactions to a CSV file.

    Examples:
        tally export transactions.csv --start-date "this year"
    """
    db = ctx.obj["db"]
    ledger = ctx.obj["ledger"]
    account_service = AccountService(db, ledger)

    account_id = resolve_account_or_exit(ctx, account_service, account).id if account else None
    try:
        transactions = ledger.get_transactions(
            account_id=account_id,
            start_date=parse_date_or_exit(ctx, start_date) if start_date else None,
            end_date=parse_date_or_exit(ctx, end_date) if end_date else None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    count = export_transactions_csv(
        output,
        transactions,
        account_service.list_accounts(),
        CategoryService(db).list_categories(),
    )
    click.echo(f"Exported {count} transactions to {output}")


def register_commands(cli):
    """Register export command with main CLI."""
    cli.add_command(export_csv)
