"""Tests for CategoryService."""

import pytest

from conftest import expense
from tally.domain.category import DEFAULT_CATEGORIES
from tally.domain.errors import DependencyError, NotFoundError, ValidationError


class TestCategoryService:
    """Tests for CategoryService."""

    def test_create_category(self, category_service):
        cat = category_service.create_category("groceries", icon="cart.fill", color_hex="#4CAF50")
        assert cat.name == "groceries"
        assert category_service.get_category_by_name("groceries").id == cat.id

    def test_duplicate_name(self, category_service):
        category_service.create_category("taxi")
        with pytest.raises(ValidationError, match="already exists"):
            category_service.create_category("taxi")

    @pytest.mark.parametrize("color", ["red", "#12345", "#GGGGGG", "4CAF50"])
    def test_invalid_color(self, category_service, color):
        with pytest.raises(ValidationError, match="#RRGGBB"):
            category_service.create_category("bad", color_hex=color)

    def test_empty_name(self, category_service):
        with pytest.raises(ValidationError):
            category_service.create_category("  ")

    def test_list_sorted_by_name(self, category_service):
        category_service.create_category("taxi")
        category_service.create_category("cafe")
        assert [c.name for c in category_service.list_categories()] == ["cafe", "taxi"]

    def test_update_category(self, category_service):
        cat = category_service.create_category("food")
        updated = category_service.update_category(cat.id, name="groceries", color_hex="#00FF00")
        assert updated.name == "groceries"
        assert updated.color_hex == "#00FF00"
        assert updated.icon == cat.icon

    def test_update_to_taken_name(self, category_service):
        category_service.create_category("cafe")
        other = category_service.create_category("bar")
        with pytest.raises(ValidationError):
            category_service.update_category(other.id, name="cafe")

    def test_delete_unused(self, category_service):
        cat = category_service.create_category("temp")
        category_service.delete_category(cat.id)
        assert category_service.get_category(cat.id) is None

    def test_delete_used_is_refused(self, category_service, ledger, card, categories):
        ledger.create_transaction(expense(card, "10", category=categories["cafe"]))
        with pytest.raises(DependencyError):
            category_service.delete_category(categories["cafe"].id)

    def test_delete_missing(self, category_service, categories):
        cat = categories["other"]
        category_service.delete_category(cat.id)
        with pytest.raises(NotFoundError):
            category_service.delete_category(cat.id)

    def test_ensure_default_categories_is_idempotent(self, category_service):
        created = category_service.ensure_default_categories()
        assert len(created) == len(DEFAULT_CATEGORIES)
        assert category_service.ensure_default_categories() == []
        assert {c.name for c in category_service.list_categories()} == {
            name for name, _, _ in DEFAULT_CATEGORIES
        }
