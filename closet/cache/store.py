"""
Durable key-value storage for client-side state (rotation caches, wishlist).

Values are strings, as in browser local storage. Every write and removal is
published on the store's signal channel so that other sessions sharing the
same channel can react to it.
"""

import json
from pathlib import Path
from typing import Optional, Protocol

from rich.console import Console

from closet.cache.signals import SignalChannel

console = Console()


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore:
    """In-process store. State is lost on restart."""

    def __init__(self, channel: Optional[SignalChannel] = None, origin: Optional[str] = None):
        self._data: dict[str, str] = {}
        self.channel = channel
        self.origin = origin

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        if self.channel:
            self.channel.publish(key, value, origin=self.origin)

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None and self.channel:
            self.channel.publish(key, None, origin=self.origin)


class JsonFileStore:
    """
    Store persisted to a single JSON file.

    The file is re-read on every access so that several processes (or several
    store instances) sharing the file see each other's writes.
    """

    def __init__(
        self,
        path: Path,
        channel: Optional[SignalChannel] = None,
        origin: Optional[str] = None,
    ):
        """
        Initialize the file store.

        Args:
            path: JSON file holding all keys. Created on first write.
            channel: Signal channel notified of every change
            origin: Identifier of this session on the channel
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.channel = channel
        self.origin = origin

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            console.print(f"[yellow]Warning: Unreadable local store {self.path}: {e}[/yellow]")
            return {}
        if not isinstance(data, dict):
            console.print(f"[yellow]Warning: Local store {self.path} is not an object, ignoring[/yellow]")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)
        if self.channel:
            self.channel.publish(key, value, origin=self.origin)

    def remove(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        self._save(data)
        if self.channel:
            self.channel.publish(key, None, origin=self.origin)


class NamespacedStore:
    """
    View of a store restricted to one use site.

    The namespace itself is the key of the main value; sibling keys are
    suffixed (``<namespace>-timestamp``).
    """

    def __init__(self, store: KeyValueStore, namespace: str):
        self.store = store
        self.namespace = namespace

    def key(self, suffix: Optional[str] = None) -> str:
        return f"{self.namespace}-{suffix}" if suffix else self.namespace

    def get(self, suffix: Optional[str] = None) -> Optional[str]:
        return self.store.get(self.key(suffix))

    def set(self, value: str, suffix: Optional[str] = None) -> None:
        self.store.set(self.key(suffix), value)

    def remove(self, suffix: Optional[str] = None) -> None:
        self.store.remove(self.key(suffix))
