"""Pending queue commands: review bank lines before they reach the ledger."""

import click
from dataclasses import replace
from datetime import timedelta
from uuid import UUID
from tally.domain.account import AccountService
from tally.domain.category import CategoryService
from tally.domain.entities import PendingTransaction, TransactionType
from tally.domain.errors import DomainError
from tally.domain.pending import PendingImportQueue
from tally.cli.account_resolution import resolve_account_or_exit, resolve_category_or_exit
from tally.cli.commands.add import parse_amount_or_exit, parse_date_or_exit
from tally.cli.error_handling import handle_domain_error
from tally.utils.amount_parser import parse_amount


@click.group()
def pending_group():
    """Review imported bank transactions."""
    pass


def _queue(ctx: click.Context) -> PendingImportQueue:
    return PendingImportQueue(ctx.obj["db"], ctx.obj["ledger"])


@pending_group.command("add")
@click.option("--amount", required=True, help="Signed amount: negative for expenses, positive for income")
@click.option("--account", help="Account tag, name or ID (defaults to the default account)")
@click.option("--date", default="today", help="Transaction date")
@click.option("--description", default="", help="Bank description")
@click.option("--merchant", help="Merchant name")
@click.option("--bank-id", help="Bank transaction id (used to skip duplicates)")
@click.pass_context
def add_pending(
    ctx,
    amount: str,
    account: str | None,
    date: str,
    description: str,
    merchant: str | None,
    bank_id: str | None,
):
    """Queue a bank line for review."""
    acc = resolve_account_or_exit(ctx, AccountService(ctx.obj["db"], ctx.obj["ledger"]), account)
    try:
        signed = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        item = _queue(ctx).create_pending_transaction(
            PendingTransaction(
                amount=abs(signed),
                description_text=description,
                merchant_name=merchant,
                transaction_date=parse_date_or_exit(ctx, date),
                type=TransactionType.EXPENSE if signed < 0 else TransactionType.INCOME,
                account_id=acc.id,
                bank_transaction_id=bank_id,
            )
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Queued pending transaction {item.id}")


@pending_group.command("list")
@click.option("--account", help="Account tag, name or ID")
@click.option("--stuck", is_flag=True, help="Show items whose processing was interrupted")
@click.option(
    "--stuck-after",
    type=click.IntRange(min=0),
    default=10,
    show_default=True,
    help="Minutes in processing before an item claimed elsewhere counts as stuck",
)
@click.pass_context
def list_pending(ctx, account: str | None, stuck: bool, stuck_after: int):
    """List items awaiting review, newest first.

    With --stuck, lists items left in processing instead. Another process may
    still be promoting an item for up to --stuck-after minutes.
    """
    queue = _queue(ctx)
    if stuck:
        items = queue.get_stuck_pending_transactions(older_than=timedelta(minutes=stuck_after))
    else:
        account_id = None
        if account:
            account_id = resolve_account_or_exit(
                ctx, AccountService(ctx.obj["db"], ctx.obj["ledger"]), account
            ).id
        items = queue.get_pending_transactions(account_id=account_id)

    if not items:
        click.echo("Nothing to review.")
        return

    category_names = {cat.id: cat.name for cat in CategoryService(ctx.obj["db"]).list_categories()}
    for item in items:
        sign = "-" if item.type is TransactionType.EXPENSE else "+"
        suggestion = category_names.get(item.suggested_category_id, "-")
        line = (
            f"{item.transaction_date} | {sign}{item.amount:,.2f} | "
            f"{(item.merchant_name or item.description_text)[:30]:30s} | "
            f"{suggestion} ({item.confidence:.0%}) | {item.id}"
        )
        if item.last_error:
            line += f" | last error: {item.last_error}"
        click.echo(line)


@pending_group.command("process")
@click.argument("pending_id", type=click.UUID)
@click.option("--category", help="Category to file the transaction under")
@click.option("--description", help="Override the description")
@click.option("--amount", help="Override the amount")
@click.pass_context
def process_pending(
    ctx, pending_id: UUID, category: str | None, description: str | None, amount: str | None
):
    """Accept a pending item into the ledger."""
    queue = _queue(ctx)
    item = queue.get_pending_transaction(pending_id)
    if item is None:
        click.echo(f"Error: Pending transaction {pending_id} not found", err=True)
        ctx.exit(1)

    transaction = None
    if category or description is not None or amount:
        # Build the reviewed transaction from the item, then apply the overrides
        transaction = queue.materialize(item, None)
        if category:
            cat = resolve_category_or_exit(ctx, CategoryService(ctx.obj["db"]), category)
            transaction = replace(transaction, category_id=cat.id)
        if description is not None:
            transaction = replace(transaction, description=description)
        if amount:
            transaction = replace(transaction, amount=parse_amount_or_exit(ctx, amount))

    try:
        created = queue.process_pending_transaction(pending_id, transaction)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recorded transaction {created.id}")


@pending_group.command("dismiss")
@click.argument("pending_id", type=click.UUID)
@click.pass_context
def dismiss_pending(ctx, pending_id: UUID):
    """Dismiss a pending item without recording it."""
    try:
        _queue(ctx).dismiss_pending_transaction(pending_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Dismissed pending transaction {pending_id}")


def register_commands(cli):
    """Register pending commands with main CLI."""
    cli.add_command(pending_group, name="pending")
