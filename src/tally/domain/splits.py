"""Split resolution: derived values of split parents and expand/collapse of the tree.

A split parent is a transaction decomposed into categorized children whose
amounts add up to its effective total. Only the parent touches balances; the
children exist for the categorized breakdown.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Sequence
from uuid import UUID, uuid5

from tally.domain.errors import ValidationError

if TYPE_CHECKING:
    from tally.domain.entities import Transaction


def is_split_parent(transaction: Transaction) -> bool:
    return bool(transaction.split_transactions)


def is_split_child(transaction: Transaction) -> bool:
    return transaction.parent_transaction_id is not None


def effective_amount(transaction: Transaction) -> Decimal:
    """Sum of the children for a split parent, the own amount otherwise."""
    if is_split_parent(transaction):
        return sum((child.amount for child in transaction.split_transactions), Decimal("0"))
    return transaction.amount


def primary_category_id(transaction: Transaction) -> Optional[UUID]:
    """Category of the largest child for a split parent, the own category otherwise.

    Ties go to the earliest child.
    """
    if is_split_parent(transaction):
        return max(transaction.split_transactions, key=lambda child: child.amount).category_id
    return transaction.category_id


def split_child_id(parent_id: UUID, position: int, attempt: int = 0) -> UUID:
    """Deterministic id for the child at ``position`` of ``parent_id``."""
    name = f"split-{position}" if attempt == 0 else f"split-{position}-{attempt}"
    return uuid5(parent_id, name)


def expand_split(parent: Transaction, children: Sequence[Transaction]) -> Transaction:
    """Turn ``parent`` into a split parent over ``children``.

    Children that already belong to ``parent`` keep their ids, new ones get a
    deterministic id derived from the parent id and their position. Children
    inherit the parent's type, date and account references.

    Raises:
        ValidationError: If the tree would be invalid
    """
    if parent.parent_transaction_id is not None:
        raise ValidationError("A split child cannot itself be split")
    if parent.type.is_transfer:
        raise ValidationError("Transfers cannot be split")
    if not children:
        raise ValidationError("A split needs at least one child transaction")

    kept_ids = {
        child.id for child in children if child.parent_transaction_id == parent.id
    }
    used_ids: set[UUID] = set()
    resolved = []
    for position, child in enumerate(children):
        if child.split_transactions:
            raise ValidationError("Split children cannot be split again")
        if child.parent_transaction_id not in (None, parent.id):
            raise ValidationError(
                f"Split child {child.id} belongs to transaction {child.parent_transaction_id}, "
                f"not {parent.id}"
            )
        if child.amount is None or child.amount <= 0:
            raise ValidationError("Split amounts must be greater than zero")

        if child.parent_transaction_id == parent.id and child.id not in used_ids:
            child_id = child.id
        else:
            attempt = 0
            child_id = split_child_id(parent.id, position)
            while child_id in kept_ids or child_id in used_ids:
                attempt += 1
                child_id = split_child_id(parent.id, position, attempt)
        used_ids.add(child_id)

        resolved.append(
            replace(
                child,
                id=child_id,
                type=parent.type,
                transaction_date=parent.transaction_date,
                from_account_id=parent.from_account_id,
                to_account_id=parent.to_account_id,
                parent_transaction_id=parent.id,
                split_transactions=None,
                transfer_id=None,
            )
        )

    total = sum((child.amount for child in resolved), Decimal("0"))
    return replace(parent, amount=total, category_id=None, split_transactions=tuple(resolved))


def collapse_split(parent: Transaction, amount: Decimal, category_id: Optional[UUID]) -> Transaction:
    """Turn a split parent back into a leaf with a fresh amount and category.

    Raises:
        ValidationError: If ``parent`` is not split or ``amount`` is not positive
    """
    if not is_split_parent(parent):
        raise ValidationError(f"Transaction {parent.id} is not split")
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return replace(parent, amount=amount, category_id=category_id, split_transactions=None)
