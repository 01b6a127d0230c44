"""Category domain service."""

import logging
import re
from dataclasses import replace
from typing import Optional
from uuid import UUID

from tally.database.base import Repository, UnitOfWork
from tally.domain.entities import Category
from tally.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    category_delete_blocked,
    category_not_found,
)

logger = logging.getLogger(__name__)

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

# (name, icon, color)
DEFAULT_CATEGORIES = [
    ("groceries", "cart.fill", "#4CAF50"),
    ("taxi", "car.fill", "#FFC107"),
    ("subscriptions", "play.rectangle.fill", "#9C27B0"),
    ("utilities", "house.fill", "#2196F3"),
    ("pharmacy", "cross.case.fill", "#F44336"),
    ("cafe", "cup.and.saucer.fill", "#FF9800"),
    ("other", "ellipsis.circle.fill", "#9E9E9E"),
]


def _validate(name: str, color_hex: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Category name cannot be empty")
    if not COLOR_PATTERN.match(color_hex):
        raise ValidationError(f"Invalid color '{color_hex}'. Expected #RRGGBB")
    return name


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Repository):
        """Initialize category service.

        Args:
            db: Repository instance
        """
        self.db = db

    def create_category(self, name: str, icon: str = "circle", color_hex: str = "#000000") -> Category:
        """Create a new category.

        Args:
            name: Unique category name
            icon: Icon name
            color_hex: Display color as #RRGGBB

        Returns:
            The created category

        Raises:
            ValidationError: If the name is empty or taken, or the color is invalid
        """
        name = _validate(name, color_hex)

        def create(uow: UnitOfWork) -> Category:
            if uow.get_category_by_name(name) is not None:
                raise ValidationError(f"Category '{name}' already exists")
            return uow.add_category(Category(name=name, icon=icon, color_hex=color_hex))

        category = self.db.perform_batch(create)
        logger.info("Created category %s", category.name)
        return category

    def update_category(
        self,
        category_id: UUID,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        color_hex: Optional[str] = None,
    ) -> Category:
        """Update a category's name, icon or color.

        Raises:
            NotFoundError: If the category does not exist
            ValidationError: If the new name is taken or the color is invalid
        """

        def update(uow: UnitOfWork) -> Category:
            category = uow.get_category(category_id)
            if category is None:
                raise NotFoundError(category_not_found(category_id))
            new_color = color_hex or category.color_hex
            new_name = _validate(name if name is not None else category.name, new_color)
            existing = uow.get_category_by_name(new_name)
            if existing is not None and existing.id != category_id:
                raise ValidationError(f"Category '{new_name}' already exists")
            return uow.save_category(
                replace(category, name=new_name, icon=icon or category.icon, color_hex=new_color)
            )

        return self.db.perform_batch(update)

    def delete_category(self, category_id: UUID) -> None:
        """Delete a category.

        Raises:
            NotFoundError: If the category does not exist
            DependencyError: If transactions still use the category
        """

        def delete(uow: UnitOfWork) -> None:
            if uow.get_category(category_id) is None:
                raise NotFoundError(category_not_found(category_id))
            count = uow.count_category_transactions(category_id)
            if count:
                raise DependencyError(category_delete_blocked(category_id, count))
            uow.remove_category(category_id)

        self.db.perform_batch(delete)
        logger.info("Deleted category %s", category_id)

    def get_category(self, category_id: UUID) -> Optional[Category]:
        return self.db.get_category(category_id)

    def get_category_by_name(self, name: str) -> Optional[Category]:
        return self.db.perform_batch(lambda uow: uow.get_category_by_name(name.strip()))

    def list_categories(self) -> list[Category]:
        """List all categories by name.

        Returns:
            List of category entities
        """
        return self.db.get_all_categories()

    def ensure_default_categories(self) -> list[Category]:
        """Create the built-in categories that do not exist yet.

        Returns:
            The categories that were created
        """

        def seed(uow: UnitOfWork) -> list[Category]:
            created = []
            for name, icon, color_hex in DEFAULT_CATEGORIES:
                if uow.get_category_by_name(name) is None:
                    created.append(uow.add_category(Category(name=name, icon=icon, color_hex=color_hex)))
            return created

        created = self.db.perform_batch(seed)
        if created:
            logger.info("Created %d default categories", len(created))
        return created
