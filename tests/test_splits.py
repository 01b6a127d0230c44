"""Tests for split expansion and collapse."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from tally.domain.entities import Transaction, TransactionType
from tally.domain.errors import ValidationError
from tally.domain.splits import collapse_split, expand_split, split_child_id


def parent_expense(**kwargs):
    defaults = dict(
        type=TransactionType.EXPENSE,
        amount=Decimal("0"),
        transaction_date=date(2024, 3, 15),
        from_account_id=uuid4(),
    )
    defaults.update(kwargs)
    return Transaction(**defaults)


def part(amount, category_id=None):
    return Transaction(
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        transaction_date=date(2000, 1, 1),
        category_id=category_id,
    )


class TestExpandSplit:
    """Tests for expand_split."""

    def test_children_inherit_parent(self):
        parent = parent_expense(category_id=uuid4())
        split = expand_split(parent, [part("70"), part("30")])

        assert split.amount == Decimal("100")
        assert split.category_id is None
        for position, child in enumerate(split.split_transactions):
            assert child.id == split_child_id(parent.id, position)
            assert child.parent_transaction_id == parent.id
            assert child.transaction_date == parent.transaction_date
            assert child.from_account_id == parent.from_account_id

    def test_existing_children_keep_ids(self):
        """Re-expanding keeps the ids of children that already belong to the parent."""
        parent = expand_split(parent_expense(), [part("70"), part("30")])
        kept = parent.split_transactions[1]

        again = expand_split(parent, [part("5"), replace(kept, amount=Decimal("40"))])

        assert again.split_transactions[1].id == kept.id
        assert again.split_transactions[0].id != kept.id
        assert again.effective_amount == Decimal("45")

    def test_new_child_avoids_kept_id(self):
        parent = expand_split(parent_expense(), [part("70"), part("30")])
        first = parent.split_transactions[0]

        again = expand_split(parent, [part("1"), part("2"), first])

        ids = [child.id for child in again.split_transactions]
        assert len(set(ids)) == 3
        assert ids[2] == first.id

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_child(self, amount):
        with pytest.raises(ValidationError, match="greater than zero"):
            expand_split(parent_expense(), [part("10"), part(amount)])

    def test_no_children(self):
        with pytest.raises(ValidationError):
            expand_split(parent_expense(), [])

    def test_transfer_cannot_be_split(self):
        with pytest.raises(ValidationError, match="Transfers"):
            expand_split(parent_expense(type=TransactionType.TRANSFER_OUT), [part("1")])

    def test_child_of_other_parent(self):
        stranger = replace(part("1"), parent_transaction_id=uuid4())
        with pytest.raises(ValidationError, match="belongs to"):
            expand_split(parent_expense(), [stranger])

    def test_nested_split(self):
        nested = expand_split(parent_expense(), [part("1")])
        with pytest.raises(ValidationError):
            expand_split(parent_expense(), [nested])


class TestCollapseSplit:
    """Tests for collapse_split."""

    def test_collapse(self):
        category_id = uuid4()
        parent = expand_split(parent_expense(), [part("70"), part("30")])

        leaf = collapse_split(parent, Decimal("55"), category_id)

        assert not leaf.is_split_parent
        assert leaf.effective_amount == Decimal("55")
        assert leaf.primary_category_id == category_id

    def test_collapse_leaf(self):
        with pytest.raises(ValidationError, match="not split"):
            collapse_split(parent_expense(amount=Decimal("5")), Decimal("5"), None)
