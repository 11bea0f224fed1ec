"""Client-side caches: durable store, change signals, display rotation."""

from .rotation import RotationCache
from .signals import SignalChannel
from .store import JsonFileStore, KeyValueStore, MemoryStore, NamespacedStore

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "NamespacedStore",
    "RotationCache",
    "SignalChannel",
]
