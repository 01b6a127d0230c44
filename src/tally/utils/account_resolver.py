"""Utility for resolving account and category references given on the command line."""

from uuid import UUID

from tally.domain.account import AccountService
from tally.domain.category import CategoryService
from tally.domain.entities import Account, Category
from tally.domain.errors import AccountNotFoundError, NotFoundError


def _as_uuid(value: str):
    try:
        return UUID(value)
    except ValueError:
        return None


def resolve_account(account_service: AccountService, account: str) -> Account:
    """Resolve an account tag, name or ID to an account.

    Args:
        account_service: AccountService instance
        account: Tag ("#main", or "main"), exact name, or UUID

    Returns:
        Account entity

    Raises:
        AccountNotFoundError: If no account matches
    """
    account_id = _as_uuid(account)
    if account_id is not None:
        found = account_service.get_account(account_id)
        if found is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return found

    tag = account if account.startswith("#") else f"#{account}"
    accounts = account_service.list_accounts()
    for acc in accounts:
        if acc.tag == tag:
            return acc
    for acc in accounts:
        if acc.name == account:
            return acc

    raise AccountNotFoundError(f"Account '{account}' not found")


def resolve_category(category_service: CategoryService, category: str) -> Category:
    """Resolve a category name or ID to a category.

    Raises:
        NotFoundError: If no category matches
    """
    category_id = _as_uuid(category)
    found = (
        category_service.get_category(category_id)
        if category_id is not None
        else category_service.get_category_by_name(category)
    )
    if found is None:
        raise NotFoundError(f"Category '{category}' not found")
    return found
