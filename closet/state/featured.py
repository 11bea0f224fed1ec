"""
Home page items: six featured picks plus the "About us" slideshow.
"""

import random
from typing import Callable, Optional, Sequence

from config.settings import CacheConfig, config
from closet.cache.rotation import RotationCache, now_ms
from closet.cache.signals import SignalChannel
from closet.cache.store import KeyValueStore
from closet.models import ClothingItem, ItemUpload
from closet.notify import Notifier
from closet.services.collections import RemoteCollection
from closet.state.collection import CollectionState


def featured_rotation(
    store: KeyValueStore,
    cache_config: Optional[CacheConfig] = None,
    rng: Optional[random.Random] = None,
    clock: Callable[[], int] = now_ms,
) -> RotationCache:
    """The rotation cache behind the featured items (shared with the admin inventory)."""
    cache_config = cache_config or config.cache
    return RotationCache(
        store,
        cache_config.featured_namespace,
        cache_config.featured_count,
        validity_ms=cache_config.validity_ms,
        rng=rng,
        clock=clock,
    )


class FeaturedItems(CollectionState[ClothingItem, ItemUpload]):
    """
    Read-only view of the collection for the home page.

    Review items are never featured. The full (non-review) list doubles as the
    slideshow, advanced with next_slide().
    """

    label = "featured item"
    label_plural = "featured items"
    fetch_error_message = "Could not load featured items."
    fetch_error_id = "homepage-setup-error"

    def __init__(
        self,
        remote: RemoteCollection,
        notifier: Notifier,
        store: KeyValueStore,
        channel: Optional[SignalChannel] = None,
        cache_config: Optional[CacheConfig] = None,
        rotation: Optional[RotationCache] = None,
        clock: Callable[[], int] = now_ms,
    ):
        cache_config = cache_config or config.cache
        super().__init__(
            remote,
            notifier,
            store=store,
            channel=channel,
            signal_key=cache_config.items_last_updated_key,
            rotation=rotation or featured_rotation(store, cache_config, clock=clock),
            clock=clock,
        )
        self.current_slide = 0

    def visible(self, items: Sequence[ClothingItem]) -> list[ClothingItem]:
        return [item for item in items if not item.is_review]

    @property
    def featured_items(self) -> list[ClothingItem]:
        return self.displayed

    @property
    def all_items(self) -> list[ClothingItem]:
        return self.items

    def next_slide(self) -> Optional[ClothingItem]:
        """Advance the slideshow and return the item now shown."""
        if not self.items:
            self.current_slide = 0
            return None
        self.current_slide = (self.current_slide + 1) % len(self.items)
        return self.items[self.current_slide]

    def placeholder(self, new_item: ItemUpload, temp_id: int) -> ClothingItem:
        raise TypeError("Featured items are read-only; use InventoryState to add items")
