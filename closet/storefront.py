"""
Wires the storefront together: one Supabase service, one local store, and the
page/admin states that share them.
"""

import random
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from config.settings import StorefrontConfig, config as default_config
from closet.cache.rotation import RotationCache, now_ms
from closet.cache.signals import SignalChannel
from closet.cache.store import JsonFileStore, KeyValueStore
from closet.notify import ConsoleNotifier, Notifier
from closet.services.collections import (
    CategoryCollection,
    ClothingItemCollection,
    ReviewImageCollection,
    SubscriberCollection,
)
from closet.services.supabase_service import SupabaseService
from closet.state import (
    CategoryState,
    FeaturedItems,
    InventoryState,
    ReviewsState,
    SiteConfigState,
    SubscriberState,
    Wishlist,
    featured_rotation,
)


@dataclass
class Storefront:
    """Everything a page or the admin dashboard reads from."""

    config: StorefrontConfig
    service: SupabaseService
    store: KeyValueStore
    channel: SignalChannel
    notifier: Notifier
    featured_rotation: RotationCache
    featured: FeaturedItems
    reviews: ReviewsState
    inventory: InventoryState
    categories: CategoryState
    subscribers: SubscriberState
    site_config: SiteConfigState
    wishlist: Wishlist

    def clear_rotation_caches(self) -> None:
        """Forget both rotation picks so the next page view draws new ones."""
        self.featured_rotation.clear()
        self.reviews.rotation.clear()

    def close(self) -> None:
        for state in (self.featured, self.reviews, self.inventory, self.categories, self.subscribers):
            state.close()


def build_storefront(
    storefront_config: Optional[StorefrontConfig] = None,
    service: Optional[SupabaseService] = None,
    store: Optional[KeyValueStore] = None,
    channel: Optional[SignalChannel] = None,
    notifier: Optional[Notifier] = None,
    rng: Optional[random.Random] = None,
    clock: Callable[[], int] = now_ms,
) -> Storefront:
    """
    Build a storefront.

    Args:
        storefront_config: Settings (defaults to config.settings.config)
        service: SupabaseService (created from the settings when omitted)
        store: Local key-value store (a JsonFileStore at cache.store_path when omitted)
        channel: Signal channel shared with other sessions in this process
        notifier: Notification sink (console by default)
        rng: Random source for both rotation caches
        clock: Epoch-millisecond clock

    Returns:
        A Storefront with nothing fetched yet
    """
    cfg = storefront_config or default_config
    channel = channel or SignalChannel()
    if store is None:
        cfg.ensure_dirs()
        store = JsonFileStore(cfg.cache.store_path, channel=channel, origin=uuid.uuid4().hex)
    service = service or SupabaseService(cfg.supabase)
    notifier = notifier or ConsoleNotifier()

    rotation = featured_rotation(store, cfg.cache, rng=rng, clock=clock)
    items = ClothingItemCollection(service)

    return Storefront(
        config=cfg,
        service=service,
        store=store,
        channel=channel,
        notifier=notifier,
        featured_rotation=rotation,
        featured=FeaturedItems(
            items, notifier, store, channel=channel, cache_config=cfg.cache, rotation=rotation, clock=clock
        ),
        reviews=ReviewsState(
            ReviewImageCollection(service),
            notifier,
            store,
            channel=channel,
            cache_config=cfg.cache,
            rng=rng,
            clock=clock,
        ),
        inventory=InventoryState(
            items, notifier, store, rotation, channel=channel, cache_config=cfg.cache, clock=clock
        ),
        categories=CategoryState(CategoryCollection(service), notifier),
        subscribers=SubscriberState(SubscriberCollection(service), notifier),
        site_config=SiteConfigState(service, notifier),
        wishlist=Wishlist(store, notifier, service=service, wishlist_config=cfg.wishlist),
    )
