"""
Customer review images: the full gallery and the four shown on the home page.

ReviewsState is the only owner of the review rotation; pages read
displayed_review_images and never pick their own subset.
"""

import random
from typing import Callable, Optional, Sequence

from config.settings import CacheConfig, config
from closet.cache.rotation import RotationCache, now_ms
from closet.cache.signals import SignalChannel
from closet.cache.store import KeyValueStore
from closet.models import ItemId, ReviewImage, ReviewUpload
from closet.notify import Notifier
from closet.services.collections import RemoteCollection
from closet.state.collection import CollectionState


class ReviewsState(CollectionState[ReviewImage, ReviewUpload]):
    label = "review image"
    label_plural = "review images"
    fetch_error_message = "Could not load review images."

    MESSAGES = {
        "add": ("Uploading {count} {noun}...", "{count} {noun} uploaded!"),
        "delete": ("Deleting {noun}...", "{Noun} deleted."),
        "delete_all": ("Deleting all {nouns}...", "All {nouns} deleted."),
    }

    def __init__(
        self,
        remote: RemoteCollection,
        notifier: Notifier,
        store: KeyValueStore,
        channel: Optional[SignalChannel] = None,
        cache_config: Optional[CacheConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
    ):
        cache_config = cache_config or config.cache
        rotation = RotationCache(
            store,
            cache_config.reviews_namespace,
            cache_config.reviews_count,
            validity_ms=cache_config.validity_ms,
            rng=rng,
            clock=clock,
        )
        super().__init__(
            remote,
            notifier,
            store=store,
            channel=channel,
            signal_key=cache_config.items_last_updated_key,
            rotation=rotation,
            clock=clock,
        )

    @property
    def review_images(self) -> list[ReviewImage]:
        return self.items

    @property
    def displayed_review_images(self) -> list[ReviewImage]:
        return self.displayed

    def placeholder(self, new_item: ReviewUpload, temp_id: int) -> ReviewImage:
        return ReviewImage(id=temp_id, image_url="", alt_text=new_item.alt_text)

    async def fetch_images(self) -> None:
        await self.fetch()

    async def add_images(self, uploads: Sequence[ReviewUpload]) -> list[ReviewImage]:
        return await self.add_items(uploads)

    async def delete_image(self, image_id: ItemId) -> None:
        await self.delete_item(image_id)

    async def delete_all_images(self) -> None:
        await self.delete_all_items()
