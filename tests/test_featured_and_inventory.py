import asyncio
from unittest.mock import MagicMock

import pytest

from closet.cache.store import MemoryStore
from closet.errors import MutationFailure
from closet.models import Category, ClothingItem, ItemUpload
from closet.services.collections import CategoryCollection
from closet.state.admin_lists import CategoryState, InventoryState, SubscriberState
from closet.state.featured import FeaturedItems, featured_rotation

from conftest import FakeCollection, make_item, make_subscriber

FEATURED_NS = "uy-closet-featured-items"
SIGNAL = "uy-closet-items-last-updated"


def item_remote(items):
    return FakeCollection(
        items,
        make=lambda upload, new_id: ClothingItem(
            id=new_id,
            image_url=f"https://cdn.test/items/{new_id}.jpg",
            name=upload.name or upload.category,
            category=upload.category,
        ),
    )


def upload(category="Dresses"):
    return ItemUpload(category=category, filename="look.jpg", content=b"\xff\xd8")


@pytest.fixture
def remote():
    items = [make_item(i) for i in range(1, 11)]
    items += [make_item(i, is_review=True) for i in range(11, 14)]
    return item_remote(items)


@pytest.fixture
def rotation(store, rng, clock):
    return featured_rotation(store, rng=rng, clock=clock)


@pytest.fixture
def featured(remote, notifier, store, channel, rotation, clock):
    return FeaturedItems(remote, notifier, store, channel=channel, rotation=rotation, clock=clock)


@pytest.fixture
def inventory(remote, notifier, store, channel, rotation, clock):
    return InventoryState(remote, notifier, store, rotation, channel=channel, clock=clock)


def test_featured_never_includes_review_items(featured):
    asyncio.run(featured.fetch())

    assert len(featured.all_items) == 10
    assert len(featured.featured_items) == 6
    assert not any(item.is_review for item in featured.featured_items)


def test_featured_fetch_failure_uses_homepage_correlation_id(featured, remote, notifier):
    remote.fail_fetch = True
    asyncio.run(featured.fetch())

    assert notifier.messages == [("error", "Could not load featured items.", "homepage-setup-error")]


def test_slideshow_wraps_around(featured):
    asyncio.run(featured.fetch())
    for _ in range(len(featured.all_items)):
        featured.next_slide()
    assert featured.current_slide == 0


def test_next_slide_on_empty_collection(notifier, store):
    empty = FeaturedItems(item_remote([]), notifier, store)
    asyncio.run(empty.fetch())
    assert empty.next_slide() is None


def test_inventory_add_clears_featured_rotation(featured, inventory, store, clock):
    asyncio.run(featured.fetch())
    first_pick_ts = store.get(f"{FEATURED_NS}-timestamp")

    asyncio.run(inventory.fetch())
    clock.advance(500)
    asyncio.run(inventory.add_item(upload()))

    assert store.get(f"{FEATURED_NS}") is None
    assert store.get(SIGNAL) == str(clock.now)

    # featured sees the new version and draws a fresh pick
    asyncio.run(featured.ensure_fresh())
    assert store.get(f"{FEATURED_NS}-timestamp") != first_pick_ts
    assert len(featured.all_items) == 11


def test_inventory_add_requires_category_and_image(inventory, notifier):
    with pytest.raises(MutationFailure, match="Please select a category and an image."):
        asyncio.run(inventory.add_item(ItemUpload(category="", filename="x.jpg", content=b"x")))
    assert notifier.messages == []


def test_inventory_messages(inventory, notifier):
    asyncio.run(inventory.fetch())
    asyncio.run(inventory.add_item(upload()))
    asyncio.run(inventory.delete_item(1))
    asyncio.run(inventory.delete_all_items())

    assert notifier.texts("loading") == ["Adding new item...", "Deleting item...", "Deleting all items..."]
    assert notifier.texts("success") == ["Item added successfully!", "Item deleted.", "All items deleted."]


def test_inventory_failed_delete_rolls_back(inventory, remote, notifier):
    asyncio.run(inventory.fetch())
    before = inventory.snapshot()
    remote.fail_delete = True

    with pytest.raises(MutationFailure):
        asyncio.run(inventory.delete_item(3))

    assert inventory.snapshot() == before
    assert notifier.texts("error") == ["delete rejected"]


def test_featured_refetches_when_another_session_updates(remote, notifier, channel, clock):
    shopper_store = MemoryStore(channel=channel, origin="shopper")
    admin_store = MemoryStore(channel=channel, origin="admin")
    shopper = FeaturedItems(remote, notifier, shopper_store, channel=channel, clock=clock)
    admin = InventoryState(
        remote, notifier, admin_store, featured_rotation(admin_store, clock=clock), channel=channel, clock=clock
    )

    async def scenario():
        await shopper.fetch()
        await admin.fetch()
        await admin.add_item(upload("Shoes"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    asyncio.run(scenario())

    assert "Shoes" in [item.category for item in shopper.all_items]


def test_category_state_validates_name(notifier):
    remote = FakeCollection([], make=lambda name, new_id: Category(id=new_id, name=name))
    categories = CategoryState(remote, notifier)

    with pytest.raises(MutationFailure, match="Category name is required."):
        asyncio.run(categories.add_category("   "))

    created = asyncio.run(categories.add_category(" Shoes "))
    assert created.name == "Shoes"
    assert [c.name for c in categories.items] == ["Shoes"]
    assert notifier.texts("success") == ["Category added."]


def test_categories_refuse_delete_all_before_changing_anything(notifier):
    remote = FakeCollection([Category(id=1, name="Dresses"), Category(id=2, name="Tops")])
    categories = CategoryState(remote, notifier)
    asyncio.run(categories.fetch())

    with pytest.raises(MutationFailure, match="one at a time"):
        asyncio.run(categories.delete_all_items())

    assert [c.name for c in categories.items] == ["Dresses", "Tops"]
    assert len(remote.items) == 2
    assert notifier.messages == []


def test_category_collection_delete_all_is_a_mutation_failure():
    with pytest.raises(MutationFailure) as exc_info:
        asyncio.run(CategoryCollection(MagicMock()).delete_all())
    assert exc_info.value.operation == "delete all categories"


def test_subscriber_state_does_not_touch_signal_key(notifier, store):
    remote = FakeCollection([make_subscriber(1), make_subscriber(2)])
    subscribers = SubscriberState(remote, notifier, store=store, signal_key=SIGNAL)

    asyncio.run(subscribers.fetch())
    asyncio.run(subscribers.delete_item(1))

    assert [s.id for s in subscribers.items] == [2]
    assert store.get(SIGNAL) is None


def test_fetch_failure_is_not_raised(notifier):
    remote = FakeCollection([])
    remote.fail_fetch = True
    subscribers = SubscriberState(remote, notifier)
    asyncio.run(subscribers.fetch())
    assert notifier.texts("error") == ["Could not load newsletter subscribers."]
    assert subscribers.items == []
