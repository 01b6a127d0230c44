"""Categorization collaborator used by the pending import queue."""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID


class CategorySuggester(ABC):
    """Suggests a category for an imported bank line and learns from corrections."""

    @abstractmethod
    def suggest_category(
        self, description: str, merchant_name: Optional[str]
    ) -> tuple[Optional[UUID], float]:
        """Return a ``(category_id, confidence)`` pair, confidence in [0, 1]."""
        pass

    @abstractmethod
    def learn_from_correction(
        self, description: str, merchant_name: Optional[str], category_id: UUID
    ) -> None:
        """Record that the user filed this line under ``category_id``."""
        pass


class NullCategorySuggester(CategorySuggester):
    """Suggester that never has an opinion."""

    def suggest_category(
        self, description: str, merchant_name: Optional[str]
    ) -> tuple[Optional[UUID], float]:
        return None, 0.0

    def learn_from_correction(
        self, description: str, merchant_name: Optional[str], category_id: UUID
    ) -> None:
        pass
