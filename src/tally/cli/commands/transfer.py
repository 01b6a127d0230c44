"""Transfer command."""

import click
from tally.domain.account import AccountService
from tally.domain.errors import DomainError
from tally.cli.account_resolution import resolve_account_or_exit
from tally.cli.commands.add import parse_amount_or_exit, parse_date_or_exit
from tally.cli.error_handling import handle_domain_error
from tally.cli.formatting import format_money


@click.command("transfer")
@click.option("--from", "source", required=True, help="Source account tag, name or ID")
@click.option("--to", "destination", required=True, help="Destination account tag, name or ID")
@click.option("--amount", required=True, help="Amount to move")
@click.option("--date", default="today", help="Transfer date")
@click.option("--description", default="", help="Description")
@click.pass_context
def transfer(ctx, source: str, destination: str, amount: str, date: str, description: str):
    """Move money between two accounts.

    Both legs of the transfer are recorded together.

    Examples:
        tally transfer --from "#mono" --to "#cash" --amount 1000
    """
    db = ctx.obj["db"]
    ledger = ctx.obj["ledger"]
    account_service = AccountService(db, ledger)

    from_acc = resolve_account_or_exit(ctx, account_service, source)
    to_acc = resolve_account_or_exit(ctx, account_service, destination)
    txn_amount = parse_amount_or_exit(ctx, amount)
    txn_date = parse_date_or_exit(ctx, date)

    try:
        out_leg, in_leg = ledger.create_transfer(
            from_acc.id,
            to_acc.id,
            txn_amount,
            transaction_date=txn_date,
            description=description,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Transferred {format_money(out_leg.amount, from_acc.currency.value)} "
        f"from {from_acc.tag} to {to_acc.tag}"
    )
    click.echo(f"  Transfer: {out_leg.transfer_id}")
    click.echo(f"  Legs: {out_leg.id} (out), {in_leg.id} (in)")


def register_commands(cli):
    """Register transfer command with main CLI."""
    cli.add_command(transfer)
