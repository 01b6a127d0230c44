"""CLI helpers for account and category resolution."""

from __future__ import annotations

import click
from tally.domain.account import AccountService
from tally.domain.category import CategoryService
from tally.domain.entities import Account, Category
from tally.domain.errors import DomainError
from tally.cli.error_handling import handle_domain_error
from tally.utils.account_resolver import resolve_account, resolve_category


def resolve_account_or_exit(ctx: click.Context, account_service: AccountService, account: str | None) -> Account:
    """Resolve an account tag, name or ID, or exit with a CLI error.

    Without ``account`` the default account is used, created on first use.
    """
    try:
        if account is None:
            return account_service.ensure_default_account()
        return resolve_account(account_service, account)
    except DomainError as exc:
        handle_domain_error(ctx, exc)


def resolve_category_or_exit(ctx: click.Context, category_service: CategoryService, category: str) -> Category:
    """Resolve a category name or ID, or exit with a CLI error."""
    try:
        return resolve_category(category_service, category)
    except DomainError as exc:
        handle_domain_error(ctx, exc)
