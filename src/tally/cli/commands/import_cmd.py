"""Bank statement import command."""

import click
from tally.domain.account import AccountService
from tally.domain.bank_import import BankFeedImportService
from tally.domain.errors import DomainError
from tally.domain.pending import PendingImportQueue
from tally.cli.account_resolution import resolve_account_or_exit
from tally.cli.error_handling import handle_domain_error


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--account", help="Account the statement belongs to (defaults to the default account)")
@click.pass_context
def import_csv(ctx, csv_file: str, account: str | None):
    """Import a bank statement CSV into the pending queue.

    The file needs the columns id, date, amount and description; merchant is
    optional. Lines already imported are skipped. Review the result with
    'tally pending list'.

    Examples:
        tally import statement.csv --account "#mono"
    """
    db = ctx.obj["db"]
    ledger = ctx.obj["ledger"]
    acc = resolve_account_or_exit(ctx, AccountService(db, ledger), account)
    service = BankFeedImportService(PendingImportQueue(db, ledger))

    try:
        result = service.import_csv(csv_file, acc.id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Imported {result['imported']} transactions into the pending queue")
    if result["skipped"] > 0:
        click.echo(f"Skipped {result['skipped']} duplicate transactions")
    if result["errors"]:
        click.echo(f"\nErrors ({len(result['errors'])}):", err=True)
        for error in result["errors"]:
            click.echo(f"  {error}", err=True)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
