"""
In-memory view of a remote collection, kept in sync with optimistic mutations.

A CollectionState holds the full list fetched from the remote collection and
the subset currently displayed (a rotation-cache pick, or the whole list).
Admin mutations go through transactional_mutation(); on success every
rotation cache fed by the collection is cleared, the "items last updated"
key is written so other sessions refetch, and the full list is refetched.
"""

import asyncio
import uuid
from typing import Any, Callable, Generic, Iterable, Optional, Sequence, TypeVar

from rich.console import Console

from closet.cache.rotation import RotationCache, now_ms
from closet.cache.signals import SignalChannel
from closet.cache.store import KeyValueStore
from closet.errors import FetchFailure, setup_error_message
from closet.models import ItemId
from closet.notify import Notifier
from closet.services.collections import RemoteCollection
from closet.state.mutations import transactional_mutation

console = Console()

T = TypeVar("T")
N = TypeVar("N")


class CollectionState(Generic[T, N]):
    """
    Full list + displayed list for one remote collection.

    Subclasses set the noun used in notifications and build placeholder
    items for optimistic adds.
    """

    label = "item"
    label_plural = "items"
    fetch_error_message = "Could not load items."
    fetch_error_id: Optional[str] = None
    # Whether successful mutations bump the shared "items last updated" key
    publishes_updates = True

    MESSAGES = {
        "add": ("Adding {count} {noun}...", "{count} {noun} added!"),
        "delete": ("Deleting {noun}...", "{Noun} deleted."),
        "delete_all": ("Deleting all {nouns}...", "All {nouns} deleted."),
    }

    def __init__(
        self,
        remote: RemoteCollection,
        notifier: Notifier,
        store: Optional[KeyValueStore] = None,
        channel: Optional[SignalChannel] = None,
        signal_key: Optional[str] = None,
        rotation: Optional[RotationCache] = None,
        invalidates: Iterable[RotationCache] = (),
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the state.

        Args:
            remote: Remote collection to read and mutate
            notifier: Where loading/success/error messages go
            store: Durable store holding the signal key
            channel: Change signals shared with other sessions
            signal_key: Key written after each successful mutation and watched for external ones
            rotation: Rotation cache choosing the displayed subset (None = display everything)
            invalidates: Other rotation caches fed by this collection
            clock: Returns the current time in epoch milliseconds
        """
        self.remote = remote
        self.notifier = notifier
        self.store = store
        self.signal_key = signal_key
        self.rotation = rotation
        self.invalidates: list[RotationCache] = ([rotation] if rotation else []) + list(invalidates)
        self.clock = clock

        self.items: list[T] = []
        self.displayed: list[T] = []
        self.loading = False
        self.loaded = False
        self.stale = False
        self.closed = False

        self._tasks: set[asyncio.Task] = set()
        self._seen_version = self._current_version()
        self._unsubscribe: Optional[Callable[[], None]] = None
        if channel is not None and signal_key:
            self._unsubscribe = channel.on_external_update(
                signal_key,
                self._on_external_update,
                origin=getattr(store, "origin", None),
            )

    # ------------------------------------------------------------------
    # snapshot protocol
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple[list[T], list[T]]:
        return list(self.items), list(self.displayed)

    def restore(self, snapshot: tuple[list[T], list[T]]) -> None:
        items, displayed = snapshot
        self.items = list(items)
        self.displayed = list(displayed)

    # ------------------------------------------------------------------
    # fetching
    # ------------------------------------------------------------------

    def visible(self, items: Sequence[T]) -> list[T]:
        """Filter applied to every fetched list."""
        return list(items)

    async def fetch(self) -> None:
        """
        Replace the in-memory lists with the remote collection.

        On failure the lists keep their last-known-good values and the user is
        notified. A response arriving after close() is dropped.
        """
        self.loading = True
        try:
            items = await self.remote.fetch_all()
        except FetchFailure as e:
            if not self.closed:
                self._report_fetch_failure(e)
            return
        finally:
            if not self.closed:
                self.loading = False

        if self.closed:
            return
        self.items = self.visible(items)
        self.displayed = self.rotation.select(self.items) if self.rotation else list(self.items)
        self.loaded = True

    def _report_fetch_failure(self, error: FetchFailure) -> None:
        console.print(f"[red]Failed to fetch {self.label_plural}: {error}[/red]")
        message = setup_error_message(error) or self.fetch_error_message
        self.notifier.notify("error", message, self.fetch_error_id)

    async def ensure_fresh(self) -> None:
        """Fetch if never loaded, flagged stale, or the shared version key moved."""
        version = self._current_version()
        if not self.loaded or self.stale or version != self._seen_version:
            self._seen_version = version
            self.stale = False
            await self.fetch()

    def _current_version(self) -> Optional[str]:
        if self.store is None or not self.signal_key:
            return None
        return self.store.get(self.signal_key)

    def _on_external_update(self, value: Optional[str]) -> None:
        if self.closed:
            return
        self.stale = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the next ensure_fresh() picks it up
            return
        task = loop.create_task(self.ensure_fresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def close(self) -> None:
        """Stop listening for updates; later responses are ignored."""
        self.closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    def placeholder(self, new_item: N, temp_id: int) -> T:
        """Optimistic stand-in for an item that is being inserted."""
        raise NotImplementedError

    def _message(self, operation: str, which: int, count: int = 1) -> str:
        noun = self.label if count == 1 else self.label_plural
        return self.MESSAGES[operation][which].format(
            count=count,
            noun=noun,
            Noun=noun[:1].upper() + noun[1:],
            nouns=self.label_plural,
        )

    def _failure_handler(self, correlation_id: str) -> Callable[[Exception], None]:
        def on_failure(error: Exception) -> None:
            if self.closed:
                return
            console.print(f"[red]{self.label_plural.capitalize()} mutation failed, rolled back: {error}[/red]")
            self.notifier.notify("error", str(error), correlation_id)

        return on_failure

    def _success_handler(self, correlation_id: str, message: str) -> Callable[[Any], Any]:
        async def on_success(_result: Any) -> None:
            if not self.closed:
                self.notifier.notify("success", message, correlation_id)
            await self.reconcile()

        return on_success

    def _correlation_id(self, operation: str) -> str:
        return f"{self.label.replace(' ', '-')}-{operation}-{uuid.uuid4().hex[:8]}"

    def publish_change(self) -> None:
        """Invalidate rotation caches and signal other sessions."""
        for cache in self.invalidates:
            cache.clear()
        if self.publishes_updates and self.store is not None and self.signal_key:
            version = str(self.clock())
            self.store.set(self.signal_key, version)
            self._seen_version = version

    async def reconcile(self) -> None:
        """Invalidate rotation caches, signal other sessions, refetch."""
        self.publish_change()
        if not self.closed:
            await self.fetch()

    async def add_items(self, new_items: Sequence[N]) -> list[T]:
        """
        Insert new items, showing placeholders until the refetch.

        Returns:
            The inserted items as returned by the remote collection

        Raises:
            MutationFailure: After rolling back, if any insert fails
        """
        new_items = list(new_items)
        if not new_items:
            return []
        count = len(new_items)
        correlation_id = self._correlation_id("add")
        self.notifier.notify("loading", self._message("add", 0, count), correlation_id)

        placeholders = [self.placeholder(n, -(i + 1)) for i, n in enumerate(new_items)]

        def apply() -> None:
            self.items = self.items + placeholders

        inserted: list[T] = []

        async def remote_call() -> list[T]:
            for n in new_items:
                inserted.append(await self.remote.insert(n))
            return inserted

        report_failure = self._failure_handler(correlation_id)

        def on_failure(error: Exception) -> None:
            report_failure(error)
            if inserted:
                # Earlier inserts are on the server even though the batch rolled back
                self.publish_change()
                self.stale = True

        return await transactional_mutation(
            self,
            apply,
            remote_call,
            self._success_handler(correlation_id, self._message("add", 1, count)),
            on_failure,
        )

    async def delete_item(self, item_id: ItemId) -> None:
        """
        Delete one item by id.

        Raises:
            MutationFailure: After rolling back, if the delete fails
        """
        correlation_id = self._correlation_id("delete")
        self.notifier.notify("loading", self._message("delete", 0), correlation_id)

        def apply() -> None:
            self.items = [i for i in self.items if i.id != item_id]
            self.displayed = [i for i in self.displayed if i.id != item_id]

        async def remote_call() -> None:
            await self.remote.delete_by_id(item_id)

        await transactional_mutation(
            self,
            apply,
            remote_call,
            self._success_handler(correlation_id, self._message("delete", 1)),
            self._failure_handler(correlation_id),
        )

    async def delete_all_items(self) -> None:
        """
        Delete every item.

        Raises:
            MutationFailure: After rolling back, if the delete fails
        """
        correlation_id = self._correlation_id("delete-all")
        self.notifier.notify("loading", self._message("delete_all", 0), correlation_id)

        def apply() -> None:
            self.items = []
            self.displayed = []

        async def remote_call() -> None:
            await self.remote.delete_all()

        await transactional_mutation(
            self,
            apply,
            remote_call,
            self._success_handler(correlation_id, self._message("delete_all", 1)),
            self._failure_handler(correlation_id),
        )
