"""Tests for AccountService."""

from decimal import Decimal

import pytest

from conftest import balance_of, expense
from tally.domain.account import AccountDeletionPolicy
from tally.domain.entities import AccountType, Currency
from tally.domain.errors import AccountNotFoundError, DependencyError, ValidationError


class TestCreateAccount:
    """Tests for create_account."""

    def test_create_account(self, account_service):
        acc = account_service.create_account(
            name="Monobank", tag="#mono", opening_balance=Decimal("250.50")
        )
        assert acc.name == "Monobank"
        assert acc.balance == Decimal("250.50")
        assert acc.opening_balance == Decimal("250.50")
        assert acc.account_type is AccountType.CARD
        assert acc.currency is Currency.UAH

    def test_first_account_becomes_default(self, account_service):
        acc = account_service.create_account(name="Only", tag="#only")
        assert acc.is_default

    def test_default_flag_moves(self, account_service, card):
        """Creating a new default account clears the old default."""
        newer = account_service.create_account(name="New", tag="#new", is_default=True)

        assert newer.is_default
        assert not account_service.get_account(card.id).is_default
        assert account_service.get_default_account().id == newer.id

    @pytest.mark.parametrize(
        "name,tag,message",
        [
            ("", "#a", "name cannot be empty"),
            ("x" * 51, "#a", "longer than 50"),
            ("Ok", "", "tag cannot be empty"),
            ("Ok", "main", "must start with '#'"),
        ],
    )
    def test_invalid_fields(self, account_service, name, tag, message):
        with pytest.raises(ValidationError, match=message):
            account_service.create_account(name=name, tag=tag)

    def test_duplicate_tag(self, account_service, card):
        with pytest.raises(ValidationError, match="already exists"):
            account_service.create_account(name="Other", tag="#mono")

    def test_invalid_opening_balance(self, account_service):
        with pytest.raises(ValidationError):
            account_service.create_account(name="A", tag="#a", opening_balance=Decimal("1.001"))


class TestQueries:
    """Tests for listing and lookup."""

    def test_list_default_first_then_name(self, account_service, cash, card):
        extra = account_service.create_account(name="Alpha", tag="#alpha")
        assert [a.id for a in account_service.list_accounts()] == [card.id, extra.id, cash.id]

    def test_get_by_tag(self, account_service, card):
        assert account_service.get_account_by_tag("#mono").id == card.id
        assert account_service.get_account_by_tag("#missing") is None

    def test_ensure_default_account_bootstraps(self, account_service):
        acc = account_service.ensure_default_account()
        assert acc.name == "default_card"
        assert acc.tag == "#main"
        assert acc.is_default
        assert account_service.ensure_default_account().id == acc.id


class TestUpdateAccount:
    """Tests for update_account and set_default_account."""

    def test_rename_and_retag(self, account_service, card):
        updated = account_service.update_account(card.id, name="Mono Black", tag="#black")
        assert updated.name == "Mono Black"
        assert updated.tag == "#black"
        assert updated.balance == card.balance

    def test_update_keeps_balance(self, account_service, ledger, card):
        ledger.create_transaction(expense(card, "100"))
        account_service.update_account(card.id, account_type=AccountType.SAVINGS)
        assert balance_of(account_service, card) == Decimal("900")

    def test_currency_change_blocked_by_transactions(self, account_service, ledger, card):
        ledger.create_transaction(expense(card, "100"))
        with pytest.raises(DependencyError):
            account_service.update_account(card.id, currency=Currency.EUR)

    def test_currency_change_without_transactions(self, account_service, cash):
        assert account_service.update_account(cash.id, currency=Currency.EUR).currency is Currency.EUR

    def test_retag_to_existing_tag(self, account_service, card, cash):
        with pytest.raises(ValidationError):
            account_service.update_account(cash.id, tag="#mono")

    def test_update_missing(self, account_service, card):
        account_service.delete_account(card.id)
        with pytest.raises(AccountNotFoundError):
            account_service.update_account(card.id, name="x")

    def test_set_default(self, account_service, card, cash):
        account_service.set_default_account(cash.id)
        defaults = [a for a in account_service.list_accounts() if a.is_default]
        assert [a.id for a in defaults] == [cash.id]


class TestDeleteAccount:
    """Tests for the deletion policies."""

    def test_delete_unused_account(self, account_service, cash):
        account_service.delete_account(cash.id)
        assert account_service.get_account(cash.id) is None

    def test_refuse_with_transactions(self, account_service, ledger, cash):
        ledger.create_transaction(expense(cash, "10"))
        with pytest.raises(DependencyError, match="1 transaction"):
            account_service.delete_account(cash.id)
        assert account_service.get_account(cash.id) is not None

    def test_cascade_deletes_transactions(self, account_service, ledger, card, cash):
        """Cascading removes the account's transactions and reverses transfers elsewhere."""
        ledger.create_transaction(expense(cash, "10"))
        ledger.create_transfer(card.id, cash.id, Decimal("100"))
        kept = ledger.create_transaction(expense(card, "5"))

        account_service.delete_account(cash.id, policy=AccountDeletionPolicy.CASCADE)

        assert account_service.get_account(cash.id) is None
        assert [t.id for t in ledger.get_transactions()] == [kept.id]
        assert balance_of(account_service, card) == Decimal("995")
        assert ledger.reconcile() == []

    def test_detach_keeps_transactions(self, account_service, ledger, cash):
        txn = ledger.create_transaction(expense(cash, "10"))
        account_service.delete_account(cash.id, policy=AccountDeletionPolicy.DETACH)

        assert account_service.get_account(cash.id) is None
        assert ledger.get_transaction(txn.id) is not None

    def test_deleting_default_promotes_another(self, account_service, card, cash):
        account_service.delete_account(card.id)
        assert account_service.get_default_account().id == cash.id

    def test_delete_missing(self, account_service, card):
        account_service.delete_account(card.id)
        with pytest.raises(AccountNotFoundError):
            account_service.delete_account(card.id)

    def test_parse_policy(self):
        assert AccountDeletionPolicy.parse(" Cascade ") is AccountDeletionPolicy.CASCADE
        with pytest.raises(ValidationError, match="expected one of"):
            AccountDeletionPolicy.parse("explode")
