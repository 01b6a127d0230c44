"""Transaction management commands."""

import click
from dataclasses import replace
from uuid import UUID
from tally.domain import splits as split_rules
from tally.domain.account import AccountService
from tally.domain.category import CategoryService
from tally.domain.entities import Transaction, TransactionType
from tally.domain.errors import DomainError
from tally.cli.account_resolution import resolve_account_or_exit, resolve_category_or_exit
from tally.cli.commands.add import parse_amount_or_exit, parse_date_or_exit, parse_splits_or_exit
from tally.cli.error_handling import handle_domain_error
from tally.cli.formatting import signed_amount, transaction_line
from tally.utils.date_parser import get_date_range


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


def get_transaction_or_exit(ctx: click.Context, transaction_id: UUID) -> Transaction:
    txn = ctx.obj["ledger"].get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)
    return txn


@transaction_group.command("list")
@click.option("--account", help="Account tag, name or ID")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--period", help="Named period: this-month, last-month, this-week, ...")
@click.option("--category", help="Category name")
@click.pass_context
def list_transactions(
    ctx,
    account: str | None,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    category: str | None,
) -> None:
    """List transactions, newest first.

    Transfers appear once per account: as a transferOut leg on the source
    account and a transferIn leg on the destination account.

    Examples:
        tally transaction list --account "#mono" --period this-month
        tally transaction list --category groceries
    """
    db = ctx.obj["db"]
    ledger = ctx.obj["ledger"]
    account_service = AccountService(db, ledger)
    category_service = CategoryService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account).id if account else None
    category_id = resolve_category_or_exit(ctx, category_service, category).id if category else None

    start = parse_date_or_exit(ctx, start_date) if start_date else None
    end = parse_date_or_exit(ctx, end_date) if end_date else None
    if period:
        try:
            start, end = get_date_range(period)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    try:
        transactions = ledger.get_transactions(
            account_id=account_id, start_date=start, end_date=end, category_id=category_id
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
        return

    category_names = {cat.id: cat.name for cat in category_service.list_categories()}
    account_tags = {acc.id: acc.tag for acc in account_service.list_accounts()}
    for txn in transactions:
        click.echo(transaction_line(txn, category_names, account_tags))
    click.echo(f"\n{len(transactions)} transaction{'s' if len(transactions) != 1 else ''}")


@transaction_group.command("show")
@click.argument("transaction_id", type=click.UUID)
@click.pass_context
def show_transaction(ctx, transaction_id: UUID) -> None:
    """Show a transaction with its splits or transfer details."""
    db = ctx.obj["db"]
    txn = get_transaction_or_exit(ctx, transaction_id)
    category_names = {cat.id: cat.name for cat in CategoryService(db).list_categories()}
    account_tags = {acc.id: acc.tag for acc in AccountService(db, ctx.obj["ledger"]).list_accounts()}

    click.echo(f"Transaction {txn.id}")
    click.echo(f"  Type: {txn.type.value}")
    click.echo(f"  Date: {txn.transaction_date}")
    click.echo(f"  Amount: {signed_amount(txn)}")
    if txn.from_account_id:
        click.echo(f"  From: {account_tags.get(txn.from_account_id, f'(deleted) {txn.from_account_id}')}")
    if txn.to_account_id:
        click.echo(f"  To: {account_tags.get(txn.to_account_id, f'(deleted) {txn.to_account_id}')}")
    if txn.description:
        click.echo(f"  Description: {txn.description}")
    if txn.transfer_id:
        click.echo(f"  Transfer: {txn.transfer_id}")
    if txn.bank_transaction_id:
        click.echo(f"  Bank ID: {txn.bank_transaction_id}")
    click.echo(f"  Version: {txn.version}")
    if txn.is_split_parent:
        click.echo("  Splits:")
        for child in txn.split_transactions:
            click.echo(f"    {category_names.get(child.category_id, '-'):20s} {child.amount:>12,.2f}")
    else:
        click.echo(f"  Category: {category_names.get(txn.category_id, '-')}")


@transaction_group.command("update")
@click.argument("transaction_id", type=click.UUID)
@click.option("--account", help="Account tag, name or ID")
@click.option("--date", help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')")
@click.option("--amount", help="Transaction amount (turns a split transaction back into a single one)")
@click.option("--description", help="Transaction description")
@click.option("--category", help="Category name, or empty string to clear")
@click.option("--split", "splits", multiple=True, metavar="CATEGORY=AMOUNT", help="Replace the splits")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: UUID,
    account: str | None,
    date: str | None,
    amount: str | None,
    description: str | None,
    category: str | None,
    splits: tuple[str, ...],
) -> None:
    """Update a transaction.

    Updates only the fields that are provided. Editing one leg of a transfer
    updates the other leg as well.

    Examples:
        tally transaction update <ID> --amount 75
        tally transaction update <ID> --split groceries=50 --split cafe=25
        tally transaction update <ID> --category ""  # Clear category
    """
    db = ctx.obj["db"]
    ledger = ctx.obj["ledger"]
    account_service = AccountService(db, ledger)
    category_service = CategoryService(db)

    txn = get_transaction_or_exit(ctx, transaction_id)
    updated = txn

    if date is not None:
        updated = replace(updated, transaction_date=parse_date_or_exit(ctx, date))

    if account is not None:
        acc = resolve_account_or_exit(ctx, account_service, account)
        if txn.type in (TransactionType.EXPENSE, TransactionType.TRANSFER_OUT):
            updated = replace(updated, from_account_id=acc.id)
        else:
            updated = replace(updated, to_account_id=acc.id)

    if description is not None:
        updated = replace(updated, description=description)

    category_id = txn.category_id
    if category is not None:
        category_id = resolve_category_or_exit(ctx, category_service, category).id if category else None

    if splits:
        children = parse_splits_or_exit(
            ctx, category_service, splits, txn.type, updated.transaction_date
        )
        try:
            updated = split_rules.expand_split(updated, children)
        except DomainError as e:
            handle_domain_error(ctx, e)
    elif amount is not None and txn.is_split_parent:
        try:
            updated = split_rules.collapse_split(updated, parse_amount_or_exit(ctx, amount), category_id)
        except DomainError as e:
            handle_domain_error(ctx, e)
    else:
        if amount is not None:
            updated = replace(updated, amount=parse_amount_or_exit(ctx, amount))
        if category is not None:
            updated = replace(updated, category_id=category_id)

    if updated == txn:
        click.echo("Nothing to update.")
        return

    try:
        saved = ledger.update_transaction(updated)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated transaction {saved.id}")


@transaction_group.command("delete")
@click.argument("transaction_id", type=click.UUID)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: UUID, yes: bool) -> None:
    """Delete a transaction.

    Deleting a split transaction removes its splits; deleting a transfer leg
    removes both legs.
    """
    txn = get_transaction_or_exit(ctx, transaction_id)

    what = "transfer" if txn.type.is_transfer else "transaction"
    if not yes and not click.confirm(f"Are you sure you want to delete {what} {transaction_id}?"):
        click.echo("Cancelled.")
        return

    try:
        ctx.obj["ledger"].delete_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deleted {what} {transaction_id}")


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
