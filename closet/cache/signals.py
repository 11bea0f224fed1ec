"""
Cross-session change signals.

Mirrors the browser ``storage`` event: when a key changes in the shared
store, every *other* subscriber watching that key is called with the new
value (None on removal). The writer itself is never notified.
"""

from collections import defaultdict
from typing import Callable, Optional

from rich.console import Console

console = Console()

UpdateCallback = Callable[[Optional[str]], None]


class SignalChannel:
    """Publish/subscribe channel keyed by store key."""

    def __init__(self):
        self._subscribers: dict[str, list[tuple[Optional[str], UpdateCallback]]] = defaultdict(list)

    def on_external_update(
        self,
        key: str,
        callback: UpdateCallback,
        origin: Optional[str] = None,
    ) -> Callable[[], None]:
        """
        Subscribe to changes of ``key`` made by other sessions.

        Args:
            key: Store key to watch
            callback: Called with the new value
            origin: Session id of the subscriber; writes from the same origin are skipped

        Returns:
            Function that removes the subscription
        """
        entry = (origin, callback)
        self._subscribers[key].append(entry)

        def unsubscribe() -> None:
            try:
                self._subscribers[key].remove(entry)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, key: str, value: Optional[str], origin: Optional[str] = None) -> int:
        """
        Notify subscribers of ``key``.

        Returns:
            Number of callbacks invoked
        """
        notified = 0
        for sub_origin, callback in list(self._subscribers.get(key, ())):
            if origin is not None and sub_origin == origin:
                continue
            try:
                callback(value)
            except Exception as e:
                console.print(f"[yellow]Warning: update handler for '{key}' failed: {e}[/yellow]")
            notified += 1
        return notified

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))
