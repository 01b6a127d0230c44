"""Rendering of ledger errors on the command line."""

import logging

import click

from tally.domain.errors import DomainError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Print ``error`` as ``Error: ...`` and exit with status 1.

    The error type and command path are logged at DEBUG, so ``--debug`` shows
    which ledger rule rejected the command.
    """
    logger.debug("%s rejected by %s: %s", ctx.command_path, type(error).__name__, error)
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
