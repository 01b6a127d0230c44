"""Shared domain error messages and error types."""

from uuid import UUID


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class AccountNotFoundError(NotFoundError):
    """A transaction references an account that does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or stale versions."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class PersistenceError(DomainError):
    """The storage layer failed to save or fetch; the unit of work was rolled back."""


def account_not_found(account_id: UUID) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: UUID) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: UUID) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def pending_not_found(pending_id: UUID) -> str:
    """Return message for missing pending transaction."""
    return f"Pending transaction {pending_id} not found"


def duplicate_bank_transaction_id(bank_transaction_id: str) -> str:
    """Return message for a bank transaction that was already imported."""
    return f"Pending transaction with bank id '{bank_transaction_id}' already exists"


def stale_version(transaction_id: UUID, expected: int, actual: int) -> str:
    """Return message for an update based on an outdated copy."""
    return (
        f"Transaction {transaction_id} was modified concurrently "
        f"(version {expected} given, {actual} stored). Re-fetch and retry."
    )


def account_delete_blocked(account_id: UUID, transaction_count: int) -> str:
    """Return message when account has dependent transactions."""
    return (
        f"Cannot delete account {account_id}: it has {transaction_count} "
        f"transaction{'s' if transaction_count != 1 else ''}. "
        "Delete them first or use the 'cascade' or 'detach' policy."
    )


def category_delete_blocked(category_id: UUID, transaction_count: int) -> str:
    """Return message when category is still referenced by transactions."""
    return (
        f"Cannot delete category {category_id}: it is used by {transaction_count} "
        f"transaction{'s' if transaction_count != 1 else ''}."
    )
