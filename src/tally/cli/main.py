"""Main CLI entry point."""

import click
from tally.config import Settings
from tally.database.factories import create_sqlite_database
from tally.domain.errors import DomainError
from tally.domain.ledger import LedgerEngine
from tally.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from tally.cli.commands import (
    account,
    category,
    add,
    transfer,
    transaction,
    pending,
    import_cmd,
    export,
    reconcile,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides TALLY_DB_PATH environment variable)",
    envvar="TALLY_DB_PATH",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, debug: bool):
    """Tally - personal ledger.

    Record expenses, incomes, transfers between accounts and split
    transactions, and review bank statement lines before they reach the
    ledger.
    """
    ctx.ensure_object(dict)

    try:
        settings = Settings.from_environment(database_path=db_path)
    except DomainError as e:
        handle_domain_error(ctx, e)
    settings.setup_logging(debug=debug)
    ctx.obj["settings"] = settings

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=settings.database_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["ledger"] = LedgerEngine(db)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
add.register_commands(cli)
transfer.register_commands(cli)
transaction.register_commands(cli)
pending.register_commands(cli)
import_cmd.register_commands(cli)
export.register_commands(cli)
reconcile.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
