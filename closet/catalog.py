"""
Collection page: category filter and pagination over the clothing items.
"""

import math
from typing import Optional, Sequence

from config.settings import CatalogConfig, config
from closet.models import ClothingItem


class CollectionBrowser:
    """
    Filtered, paginated view of the shop's items.

    Review items never appear. Changing the category resets to page 1;
    asking for a page outside 1..total_pages leaves the page unchanged.
    """

    def __init__(
        self,
        items: Sequence[ClothingItem] = (),
        catalog_config: Optional[CatalogConfig] = None,
    ):
        self.config = catalog_config or config.catalog
        self.items: list[ClothingItem] = []
        self.active_category = self.config.all_category
        self.page = 1
        self.set_items(items)

    def set_items(self, items: Sequence[ClothingItem]) -> None:
        """Replace the item list (e.g. after a refetch), keeping the filter if still valid."""
        self.items = [item for item in items if not item.is_review]
        if self.active_category not in self.categories:
            self.active_category = self.config.all_category
        if self.page > self.total_pages:
            self.page = 1

    @property
    def categories(self) -> list[str]:
        """'All' followed by each category in the order it first appears."""
        seen: list[str] = []
        for item in self.items:
            if item.category and item.category not in seen:
                seen.append(item.category)
        return [self.config.all_category] + seen

    @property
    def filtered(self) -> list[ClothingItem]:
        if self.active_category == self.config.all_category:
            return list(self.items)
        return [item for item in self.items if item.category == self.active_category]

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.filtered) / self.config.items_per_page)

    @property
    def current_items(self) -> list[ClothingItem]:
        start = (self.page - 1) * self.config.items_per_page
        return self.filtered[start:start + self.config.items_per_page]

    def select_category(self, category: str) -> None:
        self.active_category = category or self.config.all_category
        self.page = 1

    def go_to_page(self, page: int) -> bool:
        """
        Move to a page.

        Returns:
            True if the page changed, False if it was out of range
        """
        if page < 1 or page > self.total_pages:
            return False
        self.page = page
        return True

    @property
    def empty_message(self) -> Optional[str]:
        """Message shown in place of the grid, or None when there is something to show."""
        if self.current_items:
            return None
        if not self.items or self.active_category == self.config.all_category:
            return "Our closet is currently empty. New arrivals coming soon!"
        return f'There are no items in the "{self.active_category}" category right now.'

    def page_summary(self) -> dict:
        return {
            "category": self.active_category,
            "categories": self.categories,
            "page": self.page,
            "total_pages": self.total_pages,
            "items": [item.model_dump(mode="json") for item in self.current_items],
            "empty_message": self.empty_message,
        }
