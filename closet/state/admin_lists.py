"""
Admin-side lists: inventory, categories, newsletter subscribers.

Same optimistic add/delete flow as the review images. Only inventory changes
touch what shoppers see, so only it clears the featured rotation and signals
other sessions.
"""

from typing import Callable, Optional

from config.settings import CacheConfig, config
from closet.cache.rotation import RotationCache, now_ms
from closet.cache.signals import SignalChannel
from closet.cache.store import KeyValueStore
from closet.errors import MutationFailure
from closet.models import Category, ClothingItem, ItemUpload, NewsletterSubscription
from closet.notify import Notifier
from closet.services.collections import RemoteCollection
from closet.state.collection import CollectionState


class InventoryState(CollectionState[ClothingItem, ItemUpload]):
    label = "item"
    label_plural = "items"
    fetch_error_message = "Could not load clothing items."

    MESSAGES = {
        "add": ("Adding new item...", "Item added successfully!"),
        "delete": ("Deleting item...", "Item deleted."),
        "delete_all": ("Deleting all items...", "All items deleted."),
    }

    def __init__(
        self,
        remote: RemoteCollection,
        notifier: Notifier,
        store: KeyValueStore,
        featured: RotationCache,
        channel: Optional[SignalChannel] = None,
        cache_config: Optional[CacheConfig] = None,
        clock: Callable[[], int] = now_ms,
    ):
        cache_config = cache_config or config.cache
        super().__init__(
            remote,
            notifier,
            store=store,
            channel=channel,
            signal_key=cache_config.items_last_updated_key,
            invalidates=[featured],
            clock=clock,
        )

    def placeholder(self, new_item: ItemUpload, temp_id: int) -> ClothingItem:
        return ClothingItem(
            id=temp_id,
            name=new_item.name or new_item.category,
            category=new_item.category,
            product_code=new_item.product_code or "",
        )

    async def add_item(self, upload: ItemUpload) -> ClothingItem:
        if not upload.category or not upload.content:
            raise MutationFailure("Please select a category and an image.", operation="add item")
        created = await self.add_items([upload])
        return created[0]


class CategoryState(CollectionState[Category, str]):
    label = "category"
    label_plural = "categories"
    fetch_error_message = "Could not load categories."
    publishes_updates = False

    MESSAGES = {
        "add": ("Adding category...", "Category added."),
        "delete": ("Deleting category...", "Category deleted."),
        "delete_all": ("Deleting all categories...", "All categories deleted."),
    }

    def placeholder(self, new_item: str, temp_id: int) -> Category:
        return Category(id=temp_id, name=new_item)

    async def add_category(self, name: str) -> Category:
        name = (name or "").strip()
        if not name:
            raise MutationFailure("Category name is required.", operation="add category")
        created = await self.add_items([name])
        return created[0]

    async def delete_all_items(self) -> None:
        raise MutationFailure("Categories are deleted one at a time", operation="delete all categories")


class SubscriberState(CollectionState[NewsletterSubscription, str]):
    label = "subscriber"
    label_plural = "subscribers"
    fetch_error_message = "Could not load newsletter subscribers."
    publishes_updates = False

    def placeholder(self, new_item: str, temp_id: int) -> NewsletterSubscription:
        return NewsletterSubscription(id=temp_id, email=new_item, created_at="")
