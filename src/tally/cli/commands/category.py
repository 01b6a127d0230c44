"""Category management commands."""

import click
from tally.domain.category import CategoryService
from tally.domain.errors import DomainError
from tally.cli.account_resolution import resolve_category_or_exit
from tally.cli.error_handling import handle_domain_error


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("create")
@click.argument("name")
@click.option("--icon", default="circle", help="Icon name")
@click.option("--color", default="#000000", help="Display color as #RRGGBB")
@click.pass_context
def create_category(ctx, name: str, icon: str, color: str):
    """Create a new category.

    Examples:
        tally category create groceries --color "#4CAF50"
    """
    service = CategoryService(ctx.obj["db"])
    try:
        cat = service.create_category(name=name, icon=icon, color_hex=color)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created category '{cat.name}' (ID: {cat.id})")


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all categories."""
    service = CategoryService(ctx.obj["db"])
    categories = service.list_categories()
    if not categories:
        click.echo("No categories found. Run 'tally category init' to create the defaults.")
        return
    for cat in categories:
        click.echo(f"{cat.name:20s} {cat.color_hex}  {cat.icon}")


@category_group.command("delete")
@click.argument("category")
@click.pass_context
def delete_category(ctx, category: str):
    """Delete a category that no transaction uses."""
    service = CategoryService(ctx.obj["db"])
    cat = resolve_category_or_exit(ctx, service, category)
    try:
        service.delete_category(cat.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted category '{cat.name}'")


@category_group.command("init")
@click.pass_context
def init_categories(ctx):
    """Create the built-in categories that are missing."""
    service = CategoryService(ctx.obj["db"])
    created = service.ensure_default_categories()
    if not created:
        click.echo("All default categories already exist.")
        return
    click.echo(f"Created {len(created)} categories: {', '.join(cat.name for cat in created)}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
