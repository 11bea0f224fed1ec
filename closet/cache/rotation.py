"""
Display rotation cache.

Picks a bounded random subset of a collection (featured items, review images)
and keeps showing the same subset for a validity window, so repeated visits
within a day see a stable selection.
"""

import json
import random
import time
from typing import Callable, Optional, Sequence, TypeVar

from rich.console import Console

from closet.cache.store import KeyValueStore, NamespacedStore
from closet.errors import CacheCorruption
from closet.models import DisplayableItem, ItemId

console = Console()

TWENTY_FOUR_HOURS_IN_MS = 24 * 60 * 60 * 1000
TIMESTAMP_SUFFIX = "timestamp"

T = TypeVar("T", bound=DisplayableItem)


def now_ms() -> int:
    return int(time.time() * 1000)


class RotationCache:
    """
    Time-windowed random selection persisted in a key-value store.

    Stored under two keys: ``<namespace>`` holds the JSON list of selected ids,
    ``<namespace>-timestamp`` the selection time in epoch milliseconds.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str,
        display_count: int,
        validity_ms: int = TWENTY_FOUR_HOURS_IN_MS,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the rotation cache.

        Args:
            store: Durable store shared by the session
            namespace: Key for this use site (e.g. "uy-closet-featured-items")
            display_count: Maximum number of items to select
            validity_ms: How long a selection stays valid
            rng: Random source used for shuffling (seed it for repeatable picks)
            clock: Returns the current time in epoch milliseconds
        """
        if display_count <= 0:
            raise ValueError("display_count must be positive")
        self.entry = NamespacedStore(store, namespace)
        self.display_count = display_count
        self.validity_ms = validity_ms
        self.rng = rng or random.Random()
        self.clock = clock

    @property
    def namespace(self) -> str:
        return self.entry.namespace

    def read(self) -> Optional[tuple[list[ItemId], int]]:
        """
        Read the persisted entry.

        Returns:
            (selected_ids, computed_at) or None when absent

        Raises:
            CacheCorruption: If either stored value cannot be parsed
        """
        raw_ids = self.entry.get()
        raw_ts = self.entry.get(TIMESTAMP_SUFFIX)
        if raw_ids is None or raw_ts is None:
            return None

        try:
            computed_at = int(raw_ts)
        except ValueError as e:
            raise CacheCorruption(self.entry.key(TIMESTAMP_SUFFIX), raw_ts) from e

        try:
            ids = json.loads(raw_ids)
        except json.JSONDecodeError as e:
            raise CacheCorruption(self.entry.key(), raw_ids) from e
        if not isinstance(ids, list) or not all(
            isinstance(i, (int, str)) and not isinstance(i, bool) for i in ids
        ):
            raise CacheCorruption(self.entry.key(), raw_ids)

        return ids, computed_at

    def is_fresh(self, computed_at: int) -> bool:
        return self.clock() - computed_at < self.validity_ms

    def select(self, full_set: Sequence[T]) -> list[T]:
        """
        Return the items to display out of ``full_set``.

        Args:
            full_set: Authoritative, just-fetched collection

        Returns:
            At most ``display_count`` items: the cached selection if it is
            still fresh and at least one cached item survives, otherwise a new
            random pick (which is persisted)
        """
        if not full_set:
            self.clear()
            return []

        try:
            cached = self.read()
        except CacheCorruption as e:
            console.print(f"[yellow]Warning: {e}; recomputing selection[/yellow]")
            cached = None

        if cached is not None:
            cached_ids, computed_at = cached
            if self.is_fresh(computed_at):
                by_id = {item.id: item for item in full_set}
                survivors = [by_id[i] for i in cached_ids if i in by_id]
                if survivors:
                    return survivors[: self.display_count]

        return self._recompute(full_set)

    def _recompute(self, full_set: Sequence[T]) -> list[T]:
        shuffled = list(full_set)
        self.rng.shuffle(shuffled)
        selected = shuffled[: min(self.display_count, len(shuffled))]

        self.entry.set(json.dumps([item.id for item in selected]))
        self.entry.set(str(self.clock()), TIMESTAMP_SUFFIX)
        console.print(
            f"[dim]Rotation '{self.namespace}': picked {len(selected)} of {len(full_set)}[/dim]"
        )
        return selected

    def clear(self) -> None:
        """Drop the persisted selection so the next read recomputes."""
        self.entry.remove()
        self.entry.remove(TIMESTAMP_SUFFIX)
