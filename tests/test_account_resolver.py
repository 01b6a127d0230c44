"""Tests for account and category resolution."""

import pytest

from tally.domain.errors import AccountNotFoundError, NotFoundError
from tally.utils.account_resolver import resolve_account, resolve_category


class TestResolveAccount:
    """Tests for resolve_account."""

    @pytest.mark.parametrize("ref", ["#cash", "cash", "Wallet"])
    def test_by_tag_or_name(self, account_service, card, cash, ref):
        assert resolve_account(account_service, ref).id == cash.id

    def test_by_id(self, account_service, card):
        assert resolve_account(account_service, str(card.id)).id == card.id

    def test_unknown(self, account_service, card):
        with pytest.raises(AccountNotFoundError, match="'#nope' not found"):
            resolve_account(account_service, "#nope")

    def test_unknown_id(self, account_service, card):
        account_service.delete_account(card.id)
        with pytest.raises(AccountNotFoundError):
            resolve_account(account_service, str(card.id))


class TestResolveCategory:
    """Tests for resolve_category."""

    def test_by_name_and_id(self, category_service, categories):
        cafe = categories["cafe"]
        assert resolve_category(category_service, "cafe").id == cafe.id
        assert resolve_category(category_service, str(cafe.id)).id == cafe.id

    def test_unknown(self, category_service, categories):
        with pytest.raises(NotFoundError):
            resolve_category(category_service, "casino")
