"""Add transaction command."""

import click
from datetime import date
from decimal import Decimal
from tally.domain.account import AccountService
from tally.domain.category import CategoryService
from tally.domain.entities import Transaction, TransactionType
from tally.domain.errors import DomainError
from tally.cli.account_resolution import resolve_account_or_exit, resolve_category_or_exit
from tally.cli.error_handling import handle_domain_error
from tally.cli.formatting import format_money
from tally.utils.date_parser import parse_date
from tally.utils.amount_parser import parse_amount


def parse_amount_or_exit(ctx: click.Context, value: str) -> Decimal:
    """Parse a positive amount given on the command line, or exit."""
    try:
        amount = parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)
    return abs(amount)


def parse_date_or_exit(ctx: click.Context, value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)


def parse_splits_or_exit(
    ctx: click.Context,
    category_service: CategoryService,
    splits: tuple[str, ...],
    kind: TransactionType,
    txn_date: date,
) -> list[Transaction]:
    """Turn repeated CATEGORY=AMOUNT options into split children."""
    children = []
    for item in splits:
        name, sep, amount = item.rpartition("=")
        if not sep or not name.strip():
            click.echo(f"Error: Invalid split '{item}'. Expected CATEGORY=AMOUNT", err=True)
            ctx.exit(1)
        cat = resolve_category_or_exit(ctx, category_service, name.strip())
        children.append(
            Transaction(
                type=kind,
                amount=parse_amount_or_exit(ctx, amount),
                transaction_date=txn_date,
                category_id=cat.id,
            )
        )
    return children


@click.command("add")
@click.option("--amount", help="Transaction amount (required unless --split is given)")
@click.option(
    "--type",
    "kind",
    type=click.Choice(["expense", "income"]),
    default="expense",
    show_default=True,
)
@click.option("--account", help="Account tag, name or ID (defaults to the default account)")
@click.option(
    "--date",
    default="today",
    help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
@click.option("--category", help="Category name")
@click.option("--description", default="", help="Transaction description")
@click.option(
    "--split",
    "splits",
    multiple=True,
    metavar="CATEGORY=AMOUNT",
    help="Split the transaction across categories (repeatable)",
)
@click.pass_context
def add_transaction(
    ctx,
    amount: str | None,
    kind: str,
    account: str | None,
    date: str,
    category: str | None,
    description: str,
    splits: tuple[str, ...],
):
    """Add an expense or income.

    Examples:
        tally add --amount 350 --category groceries --description "Silpo"
        tally add --type income --amount 45000 --account "#mono" --description "Salary"
        tally add --split groceries=300 --split pharmacy=120.50 --description "Supermarket"
    """
    db = ctx.obj["db"]
    ledger = ctx.obj["ledger"]
    account_service = AccountService(db, ledger)
    category_service = CategoryService(db)

    if amount is None and not splits:
        click.echo("Error: Either --amount or --split is required", err=True)
        ctx.exit(1)
    if category and splits:
        click.echo("Error: --category cannot be combined with --split", err=True)
        ctx.exit(1)

    acc = resolve_account_or_exit(ctx, account_service, account)
    txn_type = TransactionType(kind)
    txn_date = parse_date_or_exit(ctx, date)
    children = parse_splits_or_exit(ctx, category_service, splits, txn_type, txn_date)
    txn_amount = parse_amount_or_exit(ctx, amount) if amount is not None else None

    if children and txn_amount is not None:
        total = sum((child.amount for child in children), Decimal("0"))
        if total != txn_amount:
            click.echo(f"Error: Split amounts add up to {total}, not {txn_amount}", err=True)
            ctx.exit(1)

    category_id = None
    if category:
        category_id = resolve_category_or_exit(ctx, category_service, category).id

    try:
        created = ledger.create_transaction(
            Transaction(
                type=txn_type,
                amount=txn_amount if txn_amount is not None else Decimal("0"),
                transaction_date=txn_date,
                description=description,
                category_id=category_id,
                from_account_id=acc.id if txn_type is TransactionType.EXPENSE else None,
                to_account_id=acc.id if txn_type is TransactionType.INCOME else None,
                split_transactions=tuple(children) or None,
            )
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created {created.type.value} {created.id}")
    click.echo(f"  Account: {acc.tag}")
    click.echo(f"  Date: {created.transaction_date}")
    click.echo(f"  Amount: {format_money(created.effective_amount, acc.currency.value)}")
    if description:
        click.echo(f"  Description: {description}")
    if created.is_split_parent:
        click.echo(f"  Split into {len(created.split_transactions)} parts")


def register_commands(cli):
    """Register add command with main CLI."""
    cli.add_command(add_transaction)
