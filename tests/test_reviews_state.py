import asyncio
import json

import pytest

from closet.cache.store import MemoryStore
from closet.errors import FetchFailure, MutationFailure
from closet.models import ReviewImage, ReviewUpload
from closet.state.reviews import ReviewsState

from conftest import FakeCollection, make_review

NS = "uy-closet-reviews-cache"
SIGNAL = "uy-closet-items-last-updated"


def build_remote(n=10):
    return FakeCollection(
        [make_review(i) for i in range(1, n + 1)],
        make=lambda upload, new_id: ReviewImage(
            id=new_id, image_url=f"https://cdn.test/reviews/{new_id}.jpg", alt_text=upload.alt_text
        ),
    )


def upload(name="photo.jpg"):
    return ReviewUpload(filename=name, content=b"\xff\xd8", alt_text=name)


@pytest.fixture
def remote():
    return build_remote()


@pytest.fixture
def state(remote, notifier, store, channel, rng, clock):
    return ReviewsState(remote, notifier, store, channel=channel, rng=rng, clock=clock)


def test_fetch_fills_full_and_displayed_lists(state, store):
    asyncio.run(state.fetch_images())

    assert len(state.review_images) == 10
    assert len(state.displayed_review_images) == 4
    assert json.loads(store.get(NS)) == [i.id for i in state.displayed_review_images]


def test_refetch_within_window_keeps_the_same_picks(state, clock):
    asyncio.run(state.fetch())
    first = [i.id for i in state.displayed]
    clock.advance(60_000)
    asyncio.run(state.fetch())
    assert [i.id for i in state.displayed] == first


def test_fetch_failure_keeps_last_known_good(state, remote, notifier):
    asyncio.run(state.fetch())
    before = state.snapshot()

    remote.fail_fetch = True
    asyncio.run(state.fetch())

    assert state.snapshot() == before
    assert notifier.texts("error") == ["Could not load review images."]
    assert state.loading is False


def test_fetch_failure_reports_setup_problem(state, remote, notifier):
    def missing_table():
        try:
            raise RuntimeError('relation "public.review_images" does not exist')
        except RuntimeError as e:
            raise FetchFailure(f"Could not load review_images: {e}", source="review_images") from e

    async def failing_fetch():
        missing_table()

    remote.fetch_all = failing_fetch
    asyncio.run(state.fetch())

    [message] = notifier.texts("error")
    assert "review_images" in message
    assert "setup" in message.lower()


def test_failed_delete_rolls_back_exactly(state, remote, notifier):
    asyncio.run(state.fetch())
    before = state.snapshot()
    target = state.displayed[0].id

    remote.fail_delete = True
    with pytest.raises(MutationFailure):
        asyncio.run(state.delete_image(target))

    assert state.snapshot() == before
    assert notifier.kinds()[-2:] == ["loading", "error"]
    loading_id = notifier.messages[-2][2]
    assert notifier.messages[-1][2] == loading_id


def test_failed_add_removes_placeholders(state, remote):
    asyncio.run(state.fetch())
    before = state.snapshot()

    remote.fail_insert = True
    with pytest.raises(MutationFailure):
        asyncio.run(state.add_images([upload("a.jpg"), upload("b.jpg")]))

    assert state.snapshot() == before
    assert all(int(i.id) > 0 for i in state.items)


def test_failed_delete_all_rolls_back(state, remote):
    asyncio.run(state.fetch())
    before = state.snapshot()
    remote.fail_delete = True

    with pytest.raises(MutationFailure):
        asyncio.run(state.delete_all_images())

    assert state.snapshot() == before


def test_add_commits_to_server_list(state, remote, notifier):
    asyncio.run(state.fetch())
    created = asyncio.run(state.add_images([upload("a.jpg"), upload("b.jpg")]))

    assert [c.alt_text for c in created] == ["a.jpg", "b.jpg"]
    assert [i.id for i in state.items] == [i.id for i in remote.items]
    assert "2 review images uploaded!" in notifier.texts("success")


def test_placeholders_are_visible_while_uploading(state, remote):
    asyncio.run(state.fetch())
    seen = []
    original_insert = remote.insert

    async def watching_insert(new_item):
        seen.append([i.id for i in state.items if int(i.id) < 0])
        return await original_insert(new_item)

    remote.insert = watching_insert
    asyncio.run(state.add_images([upload("a.jpg"), upload("b.jpg")]))

    assert seen[0] == [-1, -2]


def test_delete_commits_and_clears_rotation(state, remote, store, clock):
    asyncio.run(state.fetch())
    target = state.displayed[0].id
    clock.advance(1000)

    asyncio.run(state.delete_image(target))

    assert target not in [i.id for i in state.items]
    assert [i.id for i in state.items] == [i.id for i in remote.items]
    # fresh pick made after the mutation
    assert store.get(f"{NS}-timestamp") == str(clock.now)
    assert store.get(SIGNAL) == str(clock.now)


def test_mutation_invalidates_previous_selection(notifier, channel, clock):
    remote = build_remote(4)
    store = MemoryStore(channel=channel, origin="admin")
    state = ReviewsState(remote, notifier, store, channel=channel, clock=clock)
    asyncio.run(state.fetch())
    old_ids = [i.id for i in state.displayed]

    clock.advance(10)
    asyncio.run(state.delete_all_images())
    asyncio.run(state.add_images([upload("new.jpg")]))

    assert state.displayed and all(i.id not in old_ids for i in state.displayed)


def test_delete_all_to_empty_clears_cache(state, store):
    asyncio.run(state.fetch())
    asyncio.run(state.delete_all_images())

    assert state.items == []
    assert state.displayed == []
    assert store.get(NS) is None


def test_mutation_finishing_after_close_leaves_state_alone(state, remote, notifier):
    asyncio.run(state.fetch())

    async def scenario():
        gate = asyncio.Event()

        async def slow_failing_delete(item_id):
            await gate.wait()
            raise MutationFailure("delete rejected", operation="delete")

        remote.delete_by_id = slow_failing_delete
        task = asyncio.create_task(state.delete_image(state.items[0].id))
        await asyncio.sleep(0)
        state.close()
        state.items = ["unmounted"]
        gate.set()
        with pytest.raises(MutationFailure):
            await task

    asyncio.run(scenario())

    assert state.items == ["unmounted"]
    assert notifier.kinds() == ["loading"]


def test_success_after_close_still_signals_without_notifying(state, remote, notifier, store):
    asyncio.run(state.fetch())
    calls = remote.fetch_calls

    async def scenario():
        gate = asyncio.Event()
        original = remote.delete_by_id

        async def slow_delete(item_id):
            await gate.wait()
            await original(item_id)

        remote.delete_by_id = slow_delete
        task = asyncio.create_task(state.delete_image(state.items[0].id))
        await asyncio.sleep(0)
        state.close()
        gate.set()
        await task

    asyncio.run(scenario())

    assert notifier.kinds() == ["loading"]
    assert store.get(SIGNAL) is not None
    assert store.get(NS) is None
    assert remote.fetch_calls == calls


def test_partial_add_failure_still_signals_other_sessions(state, remote, store):
    asyncio.run(state.fetch())
    before = state.snapshot()
    original = remote.insert
    attempts = []

    async def second_insert_fails(new_item):
        attempts.append(new_item)
        if len(attempts) > 1:
            raise MutationFailure("insert rejected", operation="insert")
        return await original(new_item)

    remote.insert = second_insert_fails
    with pytest.raises(MutationFailure):
        asyncio.run(state.add_images([upload("a.jpg"), upload("b.jpg")]))

    assert state.snapshot() == before
    assert len(remote.inserted) == 1
    assert store.get(SIGNAL) is not None
    assert store.get(NS) is None
    assert state.stale is True

    asyncio.run(state.ensure_fresh())
    assert remote.inserted[0].id in [i.id for i in state.review_images]


def test_failed_add_without_inserts_does_not_signal(state, remote, store):
    asyncio.run(state.fetch())
    remote.fail_insert = True

    with pytest.raises(MutationFailure):
        asyncio.run(state.add_images([upload("a.jpg")]))

    assert store.get(SIGNAL) is None
    assert state.stale is False


def test_external_update_triggers_refetch(remote, notifier, channel, clock):
    visitor_store = MemoryStore(channel=channel, origin="visitor")
    admin_store = MemoryStore(channel=channel, origin="admin")
    visitor = ReviewsState(remote, notifier, visitor_store, channel=channel, clock=clock)

    async def scenario():
        await visitor.fetch()
        calls = remote.fetch_calls
        remote.items = remote.items[:2]
        admin_store.set(SIGNAL, "123")
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return calls

    calls_before = asyncio.run(scenario())

    assert remote.fetch_calls == calls_before + 1
    assert len(visitor.review_images) == 2


def test_external_update_without_loop_marks_stale(state, remote, channel):
    asyncio.run(state.fetch())
    calls = remote.fetch_calls

    channel.publish(SIGNAL, "999", origin="someone-else")
    assert state.stale is True

    asyncio.run(state.ensure_fresh())
    assert remote.fetch_calls == calls + 1
    assert state.stale is False


def test_ensure_fresh_skips_when_nothing_changed(state, remote):
    asyncio.run(state.ensure_fresh())
    calls = remote.fetch_calls
    asyncio.run(state.ensure_fresh())
    assert remote.fetch_calls == calls


def test_ensure_fresh_notices_version_written_by_another_process(state, remote, store):
    asyncio.run(state.ensure_fresh())
    calls = remote.fetch_calls

    store._data[SIGNAL] = "written-elsewhere"
    asyncio.run(state.ensure_fresh())

    assert remote.fetch_calls == calls + 1


def test_late_response_after_close_is_dropped(state, remote):
    async def scenario():
        gate = asyncio.Event()
        original = remote.fetch_all

        async def slow_fetch():
            await gate.wait()
            return await original()

        remote.fetch_all = slow_fetch
        task = asyncio.create_task(state.fetch())
        await asyncio.sleep(0)
        state.close()
        gate.set()
        await task

    asyncio.run(scenario())

    assert state.items == []
    assert state.displayed == []


def test_close_unsubscribes(state, channel):
    assert channel.subscriber_count(SIGNAL) == 1
    state.close()
    assert channel.subscriber_count(SIGNAL) == 0
