"""Balance reconciliation command."""

import click


@click.command("reconcile")
@click.option("--repair", is_flag=True, help="Overwrite drifted balances with the ledger value")
@click.pass_context
def reconcile(ctx, repair: bool):
    """Check every account balance against its transactions.

    Exits with status 1 when a discrepancy is found and not repaired.
    """
    discrepancies = ctx.obj["ledger"].reconcile(repair=repair)
    if not discrepancies:
        click.echo("All balances match the ledger.")
        return

    for item in discrepancies:
        click.echo(
            f"{item.tag:12s} recorded {item.recorded:>14,.2f}  expected {item.expected:>14,.2f}  "
            f"difference {item.difference:>+14,.2f}"
        )
    if repair:
        click.echo(f"Repaired {len(discrepancies)} account{'s' if len(discrepancies) != 1 else ''}.")
    else:
        click.echo("Run 'tally reconcile --repair' to fix the balances.", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
