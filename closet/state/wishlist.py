"""
Wishlist: item ids saved in the local store, shareable through a short code.
"""

import json
from dataclasses import dataclass, field
from typing import Optional

from rich.console import Console

from config.settings import WishlistConfig, config
from closet.cache.store import KeyValueStore
from closet.errors import ClosetError, setup_error_message
from closet.models import ClothingItem, ItemId
from closet.notify import Notifier

console = Console()

SHARED_NOT_FOUND = (
    "This wishlist could not be found. It may have expired (after {days} days) "
    "or the ID is incorrect."
)


@dataclass
class SharedWishlist:
    """Result of opening a shared wishlist code."""

    code: str
    items: list[ClothingItem] = field(default_factory=list)
    error: Optional[str] = None


class Wishlist:
    """
    The visitor's wishlist.

    Every change is written straight back to the store under
    ``uy-closet-wishlist`` as a JSON list of ids.
    """

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Notifier,
        service=None,
        wishlist_config: Optional[WishlistConfig] = None,
    ):
        """
        Initialize the wishlist from the store.

        Args:
            store: Durable store holding the id list
            notifier: Where confirmations go
            service: SupabaseService (only needed for item lookup and sharing)
            wishlist_config: Storage key and share settings
        """
        self.store = store
        self.notifier = notifier
        self.service = service
        self.config = wishlist_config or config.wishlist
        self.ids: list[ItemId] = self._load()
        self.generated_code: Optional[str] = None

    def _load(self) -> list[ItemId]:
        raw = self.store.get(self.config.storage_key)
        if not raw:
            return []
        try:
            ids = json.loads(raw)
        except json.JSONDecodeError as e:
            console.print(f"[yellow]Error reading wishlist from local store: {e}[/yellow]")
            return []
        if not isinstance(ids, list):
            console.print("[yellow]Stored wishlist is not a list, starting empty[/yellow]")
            return []
        return ids

    def _save(self) -> None:
        self.store.set(self.config.storage_key, json.dumps(self.ids))

    def add(self, item_id: ItemId) -> bool:
        """Add an item; returns False if it was already there."""
        if item_id in self.ids:
            return False
        self.ids = self.ids + [item_id]
        self._save()
        self.notifier.notify("success", "Added to wishlist!")
        return True

    def remove(self, item_id: ItemId) -> bool:
        """Remove an item; returns False if it was not there."""
        if item_id not in self.ids:
            return False
        self.ids = [i for i in self.ids if i != item_id]
        self._save()
        self.notifier.notify("success", "Removed from wishlist")
        return True

    def toggle(self, item_id: ItemId) -> bool:
        """Add or remove; returns whether the item is now in the wishlist."""
        if self.contains(item_id):
            self.remove(item_id)
            return False
        self.add(item_id)
        return True

    def contains(self, item_id: ItemId) -> bool:
        return item_id in self.ids

    def clear(self) -> None:
        self.ids = []
        self.generated_code = None
        self._save()

    def __len__(self) -> int:
        return len(self.ids)

    async def resolve_items(self) -> list[ClothingItem]:
        """Look up the wishlisted items; an error leaves an empty list."""
        if not self.ids:
            return []
        try:
            return self.service.get_clothing_items_by_ids(self.ids)
        except ClosetError as e:
            console.print(f"[red]Could not fetch wishlist items: {e}[/red]")
            self.notifier.notify("error", "Could not fetch wishlist items.")
            return []

    async def share(self) -> Optional[str]:
        """
        Save the wishlist remotely and return its share code.

        Returns:
            The code, or None if the wishlist is empty or saving failed
        """
        if not self.ids:
            self.notifier.notify("error", "Your wishlist is empty. Add items to share them.")
            return None

        correlation_id = "wishlist-share"
        self.notifier.notify("loading", "Generating shareable code...", correlation_id)
        try:
            code = self.service.create_wishlist(
                self.ids,
                expiry_days=self.config.share_expiry_days,
                code_length=self.config.share_code_length,
            )
        except ClosetError as e:
            self.generated_code = None
            message = setup_error_message(e) or str(e) or "Failed to generate code."
            self.notifier.notify("error", message, correlation_id)
            return None

        self.generated_code = code
        self.notifier.notify("success", "Shareable code generated!", correlation_id)
        return code

    async def open_shared(self, code: str) -> SharedWishlist:
        """Load someone else's shared wishlist."""
        result = SharedWishlist(code=code)
        try:
            item_ids = self.service.get_wishlist(code)
            if item_ids is None:
                result.error = SHARED_NOT_FOUND.format(days=self.config.share_expiry_days)
                return result
            result.items = self.service.get_clothing_items_by_ids(item_ids)
        except ClosetError as e:
            result.error = (
                setup_error_message(e)
                or str(e)
                or "An error occurred while fetching the wishlist."
            )
        return result
