"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the domain entities stay frozen
value objects and only the repository ever touches ORM rows.
"""

from decimal import Decimal

from tally.domain import entities as domain
from tally.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    PendingTransaction as ORMPendingTransaction,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        tag=orm_account.tag,
        balance=Decimal(orm_account.balance),
        opening_balance=Decimal(orm_account.opening_balance),
        is_default=orm_account.is_default,
        account_type=domain.AccountType(orm_account.account_type),
        currency=domain.Currency(orm_account.currency),
        last_transaction_date=orm_account.last_transaction_date,
        created_at=orm_account.created_at,
    )


def account_to_orm(account: domain.Account, orm_account: ORMAccount) -> ORMAccount:
    """Copy domain Account fields onto an ORM row (balance excluded)."""
    orm_account.id = account.id
    orm_account.name = account.name
    orm_account.tag = account.tag
    orm_account.is_default = account.is_default
    orm_account.account_type = account.account_type.value
    orm_account.currency = account.currency.value
    orm_account.last_transaction_date = account.last_transaction_date
    orm_account.created_at = account.created_at
    return orm_account


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        icon=orm_category.icon,
        color_hex=orm_category.color_hex,
        created_at=orm_category.created_at,
    )


def category_to_orm(category: domain.Category, orm_category: ORMCategory) -> ORMCategory:
    orm_category.id = category.id
    orm_category.name = category.name
    orm_category.icon = category.icon
    orm_category.color_hex = category.color_hex
    orm_category.created_at = category.created_at
    return orm_category


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity.

    Children of a split parent are converted recursively, in position order.
    """
    children = None
    if orm_transaction.parent_transaction_id is None and orm_transaction.children:
        children = tuple(transaction_to_domain(child) for child in orm_transaction.children)

    return domain.Transaction(
        id=orm_transaction.id,
        timestamp=orm_transaction.timestamp,
        transaction_date=orm_transaction.transaction_date,
        type=domain.TransactionType(orm_transaction.type),
        amount=Decimal(orm_transaction.amount),
        description=orm_transaction.description or "",
        category_id=orm_transaction.category_id,
        from_account_id=orm_transaction.from_account_id,
        to_account_id=orm_transaction.to_account_id,
        parent_transaction_id=orm_transaction.parent_transaction_id,
        split_transactions=children,
        transfer_id=orm_transaction.transfer_id,
        bank_transaction_id=orm_transaction.bank_transaction_id,
        pending_transaction_id=orm_transaction.pending_transaction_id,
        version=orm_transaction.version,
    )


def transaction_to_orm(
    transaction: domain.Transaction, orm_transaction: ORMTransaction, position: int = 0
) -> ORMTransaction:
    """Copy domain Transaction fields onto an ORM row (children excluded)."""
    orm_transaction.id = transaction.id
    orm_transaction.timestamp = transaction.timestamp
    orm_transaction.transaction_date = transaction.transaction_date
    orm_transaction.type = transaction.type.value
    orm_transaction.amount = transaction.amount
    orm_transaction.description = transaction.description
    orm_transaction.category_id = transaction.category_id
    orm_transaction.from_account_id = transaction.from_account_id
    orm_transaction.to_account_id = transaction.to_account_id
    orm_transaction.parent_transaction_id = transaction.parent_transaction_id
    orm_transaction.position = position
    orm_transaction.transfer_id = transaction.transfer_id
    orm_transaction.bank_transaction_id = transaction.bank_transaction_id
    orm_transaction.pending_transaction_id = transaction.pending_transaction_id
    return orm_transaction


def pending_transaction_to_domain(orm_pending: ORMPendingTransaction) -> domain.PendingTransaction:
    """Convert SQLAlchemy PendingTransaction model to domain PendingTransaction entity."""
    return domain.PendingTransaction(
        id=orm_pending.id,
        bank_transaction_id=orm_pending.bank_transaction_id,
        amount=Decimal(orm_pending.amount),
        description_text=orm_pending.description_text or "",
        merchant_name=orm_pending.merchant_name,
        transaction_date=orm_pending.transaction_date,
        type=domain.TransactionType(orm_pending.type),
        account_id=orm_pending.account_id,
        suggested_category_id=orm_pending.suggested_category_id,
        confidence=orm_pending.confidence,
        imported_at=orm_pending.imported_at,
        status=domain.PendingStatus(orm_pending.status),
        processed_at=orm_pending.processed_at,
        processing_started_at=orm_pending.processing_started_at,
        transaction_id=orm_pending.transaction_id,
        last_error=orm_pending.last_error,
    )


def pending_transaction_to_orm(
    pending: domain.PendingTransaction, orm_pending: ORMPendingTransaction
) -> ORMPendingTransaction:
    orm_pending.id = pending.id
    orm_pending.bank_transaction_id = pending.bank_transaction_id
    orm_pending.amount = pending.amount
    orm_pending.description_text = pending.description_text
    orm_pending.merchant_name = pending.merchant_name
    orm_pending.transaction_date = pending.transaction_date
    orm_pending.type = pending.type.value
    orm_pending.account_id = pending.account_id
    orm_pending.suggested_category_id = pending.suggested_category_id
    orm_pending.confidence = pending.confidence
    orm_pending.imported_at = pending.imported_at
    orm_pending.status = pending.status.value
    orm_pending.processed_at = pending.processed_at
    orm_pending.processing_started_at = pending.processing_started_at
    orm_pending.transaction_id = pending.transaction_id
    orm_pending.last_error = pending.last_error
    return orm_pending
