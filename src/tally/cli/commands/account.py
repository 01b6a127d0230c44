"""Account management commands."""

import click
from tally.domain.account import AccountDeletionPolicy, AccountService
from tally.domain.entities import AccountType, Currency
from tally.domain.errors import DomainError
from tally.cli.account_resolution import resolve_account_or_exit
from tally.cli.error_handling import handle_domain_error
from tally.cli.formatting import account_line
from tally.utils.amount_parser import parse_amount

ACCOUNT_TYPES = [t.value for t in AccountType]
CURRENCIES = [c.value for c in Currency]


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--tag", required=True, help="Short unique tag starting with '#' (e.g. '#mono')")
@click.option(
    "--type", "account_type", type=click.Choice(ACCOUNT_TYPES, case_sensitive=False), default="Card"
)
@click.option("--currency", type=click.Choice(CURRENCIES, case_sensitive=False), default="UAH")
@click.option("--opening-balance", default="0", help="Balance the account starts with")
@click.option("--default", "is_default", is_flag=True, help="Make this the default account")
@click.pass_context
def create_account(
    ctx,
    name: str,
    tag: str,
    account_type: str,
    currency: str,
    opening_balance: str,
    is_default: bool,
):
    """Create a new account.

    Examples:
        tally account create "Monobank" --tag "#mono"
        tally account create "Wallet" --tag "#cash" --type Cash --opening-balance 500
    """
    service = AccountService(ctx.obj["db"], ctx.obj["ledger"])

    try:
        balance = parse_amount(opening_balance)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        acc = service.create_account(
            name=name,
            tag=tag,
            account_type=AccountType(account_type.capitalize()),
            currency=Currency(currency.upper()),
            opening_balance=balance,
            is_default=is_default,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created account '{acc.name}' {acc.tag} (ID: {acc.id})")
    if acc.is_default:
        click.echo("This is now the default account")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts. The default account is marked with '*'."""
    service = AccountService(ctx.obj["db"], ctx.obj["ledger"])

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        click.echo(account_line(acc))


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New account name")
@click.option("--tag", help="New tag")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES, case_sensitive=False))
@click.option("--currency", type=click.Choice(CURRENCIES, case_sensitive=False))
@click.pass_context
def update_account(
    ctx,
    account: str,
    name: str | None,
    tag: str | None,
    account_type: str | None,
    currency: str | None,
) -> None:
    """Update an account's name, tag, type or currency.

    ACCOUNT can be a tag, name or ID. The balance cannot be edited; it only
    changes through transactions.

    Examples:
        tally account update "#mono" --name "Monobank Black"
    """
    service = AccountService(ctx.obj["db"], ctx.obj["ledger"])
    acc = resolve_account_or_exit(ctx, service, account)

    try:
        updated = service.update_account(
            acc.id,
            name=name,
            tag=tag,
            account_type=AccountType(account_type.capitalize()) if account_type else None,
            currency=Currency(currency.upper()) if currency else None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated account {updated.tag}")


@account_group.command("set-default")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def set_default_account(ctx, account: str) -> None:
    """Make ACCOUNT the default account."""
    service = AccountService(ctx.obj["db"], ctx.obj["ledger"])
    acc = resolve_account_or_exit(ctx, service, account)

    try:
        service.set_default_account(acc.id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Default account is now {acc.tag}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option(
    "--policy",
    type=click.Choice([p.value for p in AccountDeletionPolicy]),
    help="What to do with transactions of the account "
    "(defaults to TALLY_ACCOUNT_DELETE_POLICY, or 'refuse')",
)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, policy: str | None, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be a tag, name or ID.

    With the 'refuse' policy the account can only be deleted when no
    transaction references it. 'cascade' deletes those transactions (and
    reverses transfers on the other side), 'detach' keeps them.

    Examples:
        tally account delete "#old"
        tally account delete "#old" --policy cascade --yes
    """
    service = AccountService(ctx.obj["db"], ctx.obj["ledger"])
    acc = resolve_account_or_exit(ctx, service, account)
    chosen = AccountDeletionPolicy(policy) if policy else ctx.obj["settings"].account_delete_policy

    if not yes and not click.confirm(f"Are you sure you want to delete account {acc.tag} ({acc.name})?"):
        click.echo("Cancelled.")
        return

    try:
        service.delete_account(acc.id, policy=chosen)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deleted account {acc.tag}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
