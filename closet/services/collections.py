"""
Remote collections: the four operations the state layer needs from a table.

Each adapter maps fetch_all / insert / delete_by_id / delete_all onto the
matching SupabaseService calls.
"""

from typing import Generic, Protocol, TypeVar

from closet.errors import MutationFailure
from closet.models import (
    Category,
    ClothingItem,
    ItemId,
    ItemUpload,
    NewsletterSubscription,
    ReviewImage,
    ReviewUpload,
)
from closet.services.supabase_service import SupabaseService

T = TypeVar("T")
N = TypeVar("N")
T_co = TypeVar("T_co", covariant=True)
N_contra = TypeVar("N_contra", contravariant=True)


class RemoteCollection(Protocol[T_co, N_contra]):
    """
    A remote table seen as an ordered list.

    Failures are raised (FetchFailure / MutationFailure), never returned as
    partial data.
    """

    async def fetch_all(self) -> list[T_co]:
        ...

    async def insert(self, new_item: N_contra) -> T_co:
        ...

    async def delete_by_id(self, item_id: ItemId) -> None:
        ...

    async def delete_all(self) -> None:
        ...


class _SupabaseCollection(Generic[T, N]):
    def __init__(self, service: SupabaseService):
        self.service = service


class ReviewImageCollection(_SupabaseCollection[ReviewImage, ReviewUpload]):
    """review_images table + review photos bucket."""

    async def fetch_all(self) -> list[ReviewImage]:
        return self.service.get_review_images()

    async def insert(self, new_item: ReviewUpload) -> ReviewImage:
        return self.service.add_review_image(new_item)

    async def delete_by_id(self, item_id: ItemId) -> None:
        self.service.delete_review_image(item_id)

    async def delete_all(self) -> None:
        self.service.delete_all_review_images()


class ClothingItemCollection(_SupabaseCollection[ClothingItem, ItemUpload]):
    """clothing_items table + clothing photos bucket."""

    async def fetch_all(self) -> list[ClothingItem]:
        return self.service.get_clothing_items()

    async def insert(self, new_item: ItemUpload) -> ClothingItem:
        return self.service.add_clothing_item(
            category=new_item.category,
            filename=new_item.filename,
            content=new_item.content,
            content_type=new_item.content_type,
            name=new_item.name,
            product_code=new_item.product_code,
        )

    async def delete_by_id(self, item_id: ItemId) -> None:
        self.service.delete_clothing_item(item_id)

    async def delete_all(self) -> None:
        self.service.delete_all_clothing_items()


class CategoryCollection(_SupabaseCollection[Category, str]):
    """categories table; new items are category names."""

    async def fetch_all(self) -> list[Category]:
        return self.service.get_categories()

    async def insert(self, new_item: str) -> Category:
        return self.service.add_category(new_item)

    async def delete_by_id(self, item_id: ItemId) -> None:
        self.service.delete_category(int(item_id))

    async def delete_all(self) -> None:
        raise MutationFailure("Categories are deleted one at a time", operation="delete all categories")


class SubscriberCollection(_SupabaseCollection[NewsletterSubscription, str]):
    """newsletter_subscriptions table; new items are email addresses."""

    async def fetch_all(self) -> list[NewsletterSubscription]:
        return self.service.get_newsletter_subscribers()

    async def insert(self, new_item: str) -> NewsletterSubscription:
        return self.service.add_newsletter_subscriber(new_item)

    async def delete_by_id(self, item_id: ItemId) -> None:
        self.service.delete_newsletter_subscriber(int(item_id))

    async def delete_all(self) -> None:
        self.service.delete_all_newsletter_subscribers()
