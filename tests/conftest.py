"""Shared fakes for the storefront tests."""

import random
from typing import Callable, Optional

import pytest

from closet.cache.signals import SignalChannel
from closet.cache.store import MemoryStore
from closet.errors import FetchFailure, MutationFailure
from closet.models import Category, ClothingItem, NewsletterSubscription, ReviewImage


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, str, Optional[str]]] = []

    def notify(self, kind, message, correlation_id=None):
        self.messages.append((kind, message, correlation_id))

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.messages]

    def texts(self, kind: Optional[str] = None) -> list[str]:
        return [m for k, m, _ in self.messages if kind is None or k == kind]


class FakeCollection:
    """
    In-memory remote collection.

    ``make`` turns an insert payload plus a new id into a stored item.
    Set the fail_* flags to make the next calls raise.
    """

    def __init__(self, items=(), make: Optional[Callable] = None):
        self.items = list(items)
        self.make = make
        self.next_id = max([int(i.id) for i in self.items] or [0]) + 1
        self.fail_fetch = False
        self.fail_insert = False
        self.fail_delete = False
        self.fetch_calls = 0
        self.inserted: list = []

    async def fetch_all(self):
        self.fetch_calls += 1
        if self.fail_fetch:
            raise FetchFailure("network down", source="fake")
        return list(self.items)

    async def insert(self, new_item):
        if self.fail_insert:
            raise MutationFailure("insert rejected", operation="insert")
        item = self.make(new_item, self.next_id)
        self.next_id += 1
        self.items.append(item)
        self.inserted.append(item)
        return item

    async def delete_by_id(self, item_id):
        if self.fail_delete:
            raise MutationFailure("delete rejected", operation="delete")
        self.items = [i for i in self.items if i.id != item_id]

    async def delete_all(self):
        if self.fail_delete:
            raise MutationFailure("delete rejected", operation="delete all")
        self.items = []


def make_review(n: int) -> ReviewImage:
    return ReviewImage(id=n, image_url=f"https://cdn.test/reviews/{n}.jpg", alt_text=f"Review {n}")


def make_item(n: int, category: str = "Dresses", is_review: bool = False) -> ClothingItem:
    return ClothingItem(
        id=n,
        image_url=f"https://cdn.test/items/{n}.jpg",
        name=f"Item {n}",
        category=category,
        is_review=is_review,
    )


def make_subscriber(n: int, email: Optional[str] = None, created_at: str = "2024-05-01T10:00:00+00:00"):
    return NewsletterSubscription(id=n, email=email or f"user{n}@example.com", created_at=created_at)


class FakeService:
    """In-memory stand-in for SupabaseService."""

    def __init__(self, items=(), reviews=()):
        self.items = list(items)
        self.reviews = list(reviews)
        self.categories: list[Category] = []
        self.wishlists: dict[str, list] = {}
        self.site_config: dict = {}
        self.saved_config: list = []
        self.subscribers: list[NewsletterSubscription] = []
        self.fail_with: Optional[Exception] = None
        self.counts = {"items": 0, "reviews": 0, "subscribers": 0, "storage": 0}
        self.valid_tokens = {"good-token": "admin@uyscloset.test"}

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def get_clothing_items(self):
        self._maybe_fail()
        return list(self.items)

    def add_clothing_item(self, category, filename, content, content_type="image/jpeg", name=None, product_code=None):
        item = make_item(max([int(i.id) for i in self.items] or [0]) + 1, category)
        self.items.append(item)
        return item

    def delete_clothing_item(self, item_id):
        self.items = [i for i in self.items if i.id != item_id]

    def delete_all_clothing_items(self):
        self.items = []

    def get_review_images(self):
        self._maybe_fail()
        return list(self.reviews)

    def add_review_image(self, upload):
        image = make_review(max([int(r.id) for r in self.reviews] or [0]) + 1)
        self.reviews.append(image)
        return image

    def delete_review_image(self, image_id):
        self.reviews = [r for r in self.reviews if r.id != image_id]

    def delete_all_review_images(self):
        self.reviews = []

    def get_categories(self):
        return list(self.categories)

    def add_category(self, name):
        category = Category(id=len(self.categories) + 1, name=name)
        self.categories.append(category)
        return category

    def delete_category(self, category_id):
        self.categories = [c for c in self.categories if c.id != category_id]

    def get_newsletter_subscribers(self):
        return list(self.subscribers)

    def delete_newsletter_subscriber(self, subscriber_id):
        self.subscribers = [s for s in self.subscribers if s.id != subscriber_id]

    def delete_all_newsletter_subscribers(self):
        self.subscribers = []

    def get_clothing_items_by_ids(self, ids):
        self._maybe_fail()
        wanted = list(ids)
        return [i for i in self.items if i.id in wanted]

    def create_wishlist(self, item_ids, expiry_days=30, code_length=8):
        self._maybe_fail()
        code = "ABCD1234"[:code_length]
        self.wishlists[code] = list(item_ids)
        return code

    def get_wishlist(self, code):
        self._maybe_fail()
        return self.wishlists.get(code.strip().upper())

    def get_site_config(self):
        self._maybe_fail()
        return dict(self.site_config)

    def update_site_config(self, updates):
        self._maybe_fail()
        self.saved_config.append(updates)
        for row in updates:
            self.site_config[row["key"]] = row["value"]

    def add_newsletter_subscriber(self, email):
        self._maybe_fail()
        email = (email or "").strip().lower()
        if not email:
            raise MutationFailure("Please enter your email address.", operation="subscribe")
        sub = make_subscriber(len(self.subscribers) + 1, email=email)
        self.subscribers.append(sub)
        return sub

    def get_clothing_item_count(self):
        self._maybe_fail()
        return self.counts["items"]

    def get_review_image_count(self):
        return self.counts["reviews"]

    def get_newsletter_subscriber_count(self):
        return self.counts["subscribers"]

    def get_storage_usage(self):
        return self.counts["storage"]

    def verify_session(self, token):
        return self.valid_tokens.get(token)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def channel():
    return SignalChannel()


@pytest.fixture
def store(channel):
    return MemoryStore(channel=channel, origin="tab-1")


@pytest.fixture
def rng():
    return random.Random(42)
