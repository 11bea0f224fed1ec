"""
Supabase data layer for the storefront.

Table rows live in PostgreSQL; product and review photos live in Supabase
Storage buckets. Read failures are raised as FetchFailure and write failures
as MutationFailure, always chained to the client's original exception.
"""

import secrets
import string
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from rich.console import Console
from supabase import Client, create_client

from config.settings import SupabaseConfig, config
from closet.errors import ConfigurationError, FetchFailure, MutationFailure
from closet.models import (
    Category,
    ClothingItem,
    ItemId,
    NewsletterSubscription,
    ReviewImage,
    ReviewUpload,
)

console = Console()

M = TypeVar("M", bound=BaseModel)

STORAGE_PAGE_SIZE = 1000
REMOVE_BATCH_SIZE = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_extension(filename: str, content_type: str) -> str:
    """Get file extension from file name or content-type."""
    name = filename.lower()
    if name.endswith((".jpg", ".jpeg")):
        return ".jpg"
    elif name.endswith(".png"):
        return ".png"
    elif name.endswith(".webp"):
        return ".webp"
    elif name.endswith(".gif"):
        return ".gif"

    # Fall back to content-type
    if "png" in content_type:
        return ".png"
    elif "webp" in content_type:
        return ".webp"
    elif "gif" in content_type:
        return ".gif"

    return ".jpg"


class SupabaseService:
    """
    Reads and writes every storefront table.

    - clothing_items / review_images rows -> PostgreSQL
    - their photos -> Storage buckets (path kept in image_path)
    """

    def __init__(
        self,
        supabase_config: Optional[SupabaseConfig] = None,
        client: Optional[Client] = None,
    ):
        """
        Initialize the service.

        Args:
            supabase_config: Tables, buckets and credentials (defaults to config.supabase)
            client: Pre-built client; when omitted one is created from the credentials

        Raises:
            ConfigurationError: If no client is given and SUPABASE_URL / SUPABASE_KEY are missing
        """
        self.config = supabase_config or config.supabase
        if client is None:
            if not self.config.configured:
                raise ConfigurationError(
                    "Supabase is not configured. Set SUPABASE_URL and SUPABASE_KEY in .env"
                )
            client = create_client(self.config.url, self.config.key)
        self.client: Client = client

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _fetch(self, source: str, query) -> list[dict]:
        try:
            result = query.execute()
        except Exception as e:
            raise FetchFailure(f"Could not load {source}: {e}", source=source) from e
        return result.data or []

    def _parse(self, source: str, model: type[M], rows: list[dict]) -> list[M]:
        try:
            return [model.model_validate(row) for row in rows]
        except ValidationError as e:
            raise FetchFailure(f"Could not read {source}: {e}", source=source) from e

    def _count(self, table: str) -> int:
        try:
            result = self.client.table(table).select("id", count="exact").execute()
        except Exception as e:
            raise FetchFailure(f"Could not count {table}: {e}", source=table) from e
        return result.count or 0

    def _mutate(self, operation: str, query) -> list[dict]:
        try:
            result = query.execute()
        except Exception as e:
            raise MutationFailure(f"Failed to {operation}: {e}", operation=operation) from e
        return result.data or []

    def _upload(self, bucket: str, filename: str, content: bytes, content_type: str) -> tuple[str, str]:
        """Upload a file under a unique name; returns (storage_path, public_url)."""
        storage_path = f"{uuid.uuid4().hex}{get_extension(filename, content_type)}"
        try:
            self.client.storage.from_(bucket).upload(
                storage_path,
                content,
                {"content-type": content_type},
            )
        except Exception as e:
            raise MutationFailure(f"Failed to upload {filename}: {e}", operation="upload") from e
        return storage_path, self.client.storage.from_(bucket).get_public_url(storage_path)

    def _remove_files(self, bucket: str, paths: list[str]) -> None:
        for i in range(0, len(paths), REMOVE_BATCH_SIZE):
            batch = paths[i : i + REMOVE_BATCH_SIZE]
            try:
                self.client.storage.from_(bucket).remove(batch)
            except Exception as e:
                # Orphaned files only cost storage; the row delete still matters
                console.print(f"[yellow]Warning: Could not delete images from '{bucket}': {e}[/yellow]")

    def _image_path_of(self, table: str, item_id: ItemId) -> Optional[str]:
        rows = self._fetch(table, self.client.table(table).select("image_path").eq("id", item_id))
        return rows[0].get("image_path") if rows else None

    # ------------------------------------------------------------------
    # clothing items
    # ------------------------------------------------------------------

    def get_clothing_items(self) -> list[ClothingItem]:
        """All clothing items, newest first."""
        table = self.config.items_table
        rows = self._fetch(table, self.client.table(table).select("*").order("created_at", desc=True))
        return self._parse(table, ClothingItem, rows)

    def get_clothing_items_by_ids(self, ids: Iterable[ItemId]) -> list[ClothingItem]:
        """Clothing items with the given ids (missing ids are skipped)."""
        ids = list(ids)
        if not ids:
            return []
        table = self.config.items_table
        rows = self._fetch(table, self.client.table(table).select("*").in_("id", ids))
        return self._parse(table, ClothingItem, rows)

    def add_clothing_item(
        self,
        category: str,
        filename: str,
        content: bytes,
        content_type: str = "image/jpeg",
        name: Optional[str] = None,
        product_code: Optional[str] = None,
    ) -> ClothingItem:
        """
        Upload a photo and insert a clothing item.

        Args:
            category: Category name
            filename: Original file name (used for the extension)
            content: Image bytes
            content_type: MIME type of the image
            name: Display name (defaults to the category)
            product_code: Shop code (generated when omitted)

        Returns:
            The inserted item
        """
        if not category or not content:
            raise MutationFailure("Please select a category and an image.", operation="add item")

        storage_path, public_url = self._upload(self.config.items_bucket, filename, content, content_type)
        record = {
            "name": name or category,
            "category": category,
            "product_code": product_code or f"UY-{uuid.uuid4().hex[:6].upper()}",
            "image_path": storage_path,
            "image_url": public_url,
        }
        table = self.config.items_table
        rows = self._mutate("add item", self.client.table(table).insert(record))
        if not rows:
            raise MutationFailure("Failed to insert clothing item", operation="add item")
        console.print(f"[green]✓ Added item: {record['name']} ({record['product_code']})[/green]")
        return ClothingItem.model_validate(rows[0])

    def delete_clothing_item(self, item_id: ItemId) -> None:
        """Delete a clothing item and its photo."""
        table = self.config.items_table
        try:
            image_path = self._image_path_of(table, item_id)
        except FetchFailure as e:
            raise MutationFailure(str(e), operation="delete item") from e
        if image_path:
            self._remove_files(self.config.items_bucket, [image_path])
        self._mutate("delete item", self.client.table(table).delete().eq("id", item_id))

    def delete_all_clothing_items(self) -> int:
        """
        Delete ALL clothing items and their photos.

        Returns:
            Number of items deleted
        """
        table = self.config.items_table
        try:
            rows = self._fetch(table, self.client.table(table).select("id, image_path"))
        except FetchFailure as e:
            raise MutationFailure(str(e), operation="delete all items") from e
        paths = [r["image_path"] for r in rows if r.get("image_path")]
        if paths:
            self._remove_files(self.config.items_bucket, paths)
        # Supabase refuses an unfiltered DELETE; id >= 0 matches every row
        self._mutate("delete all items", self.client.table(table).delete().gte("id", 0))
        console.print(f"[green]✓ Deleted {len(rows)} clothing items[/green]")
        return len(rows)

    def get_clothing_item_count(self) -> int:
        return self._count(self.config.items_table)

    # ------------------------------------------------------------------
    # review images
    # ------------------------------------------------------------------

    def get_review_images(self) -> list[ReviewImage]:
        """All review images, newest first."""
        table = self.config.reviews_table
        rows = self._fetch(table, self.client.table(table).select("*").order("created_at", desc=True))
        return self._parse(table, ReviewImage, rows)

    def add_review_image(self, upload: ReviewUpload) -> ReviewImage:
        """Upload a review photo and insert its row."""
        storage_path, public_url = self._upload(
            self.config.reviews_bucket, upload.filename, upload.content, upload.content_type
        )
        record = {
            "image_path": storage_path,
            "image_url": public_url,
            "alt_text": upload.alt_text,
        }
        table = self.config.reviews_table
        rows = self._mutate("add review image", self.client.table(table).insert(record))
        if not rows:
            raise MutationFailure("Failed to insert review image", operation="add review image")
        return ReviewImage.model_validate(rows[0])

    def delete_review_image(self, image_id: ItemId) -> None:
        """Delete a review image and its photo."""
        table = self.config.reviews_table
        try:
            image_path = self._image_path_of(table, image_id)
        except FetchFailure as e:
            raise MutationFailure(str(e), operation="delete review image") from e
        if image_path:
            self._remove_files(self.config.reviews_bucket, [image_path])
        self._mutate("delete review image", self.client.table(table).delete().eq("id", image_id))

    def delete_all_review_images(self) -> int:
        """Delete ALL review images and their photos."""
        table = self.config.reviews_table
        try:
            rows = self._fetch(table, self.client.table(table).select("id, image_path"))
        except FetchFailure as e:
            raise MutationFailure(str(e), operation="delete all review images") from e
        paths = [r["image_path"] for r in rows if r.get("image_path")]
        if paths:
            self._remove_files(self.config.reviews_bucket, paths)
        self._mutate("delete all review images", self.client.table(table).delete().gte("id", 0))
        return len(rows)

    def get_review_image_count(self) -> int:
        return self._count(self.config.reviews_table)

    # ------------------------------------------------------------------
    # categories
    # ------------------------------------------------------------------

    def get_categories(self) -> list[Category]:
        table = self.config.categories_table
        rows = self._fetch(table, self.client.table(table).select("*").order("name"))
        return self._parse(table, Category, rows)

    def add_category(self, name: str) -> Category:
        name = (name or "").strip()
        if not name:
            raise MutationFailure("Category name is required.", operation="add category")
        table = self.config.categories_table
        rows = self._mutate("add category", self.client.table(table).insert({"name": name}))
        if not rows:
            raise MutationFailure("Failed to insert category", operation="add category")
        return Category.model_validate(rows[0])

    def delete_category(self, category_id: int) -> None:
        """Delete a category. Items in it are kept."""
        table = self.config.categories_table
        self._mutate("delete category", self.client.table(table).delete().eq("id", category_id))

    # ------------------------------------------------------------------
    # newsletter
    # ------------------------------------------------------------------

    def add_newsletter_subscriber(self, email: str) -> NewsletterSubscription:
        email = (email or "").strip().lower()
        if not email:
            raise MutationFailure("Please enter your email address.", operation="subscribe")
        table = self.config.newsletter_table
        try:
            result = self.client.table(table).insert({"email": email}).execute()
        except Exception as e:
            if "duplicate" in str(e).lower() or "23505" in str(getattr(e, "code", "")):
                raise MutationFailure("This email is already subscribed.", operation="subscribe") from e
            raise MutationFailure(f"Subscription failed: {e}", operation="subscribe") from e
        if not result.data:
            raise MutationFailure("Subscription failed.", operation="subscribe")
        return NewsletterSubscription.model_validate(result.data[0])

    def get_newsletter_subscribers(self) -> list[NewsletterSubscription]:
        table = self.config.newsletter_table
        rows = self._fetch(table, self.client.table(table).select("*").order("created_at", desc=True))
        return self._parse(table, NewsletterSubscription, rows)

    def delete_newsletter_subscriber(self, subscriber_id: int) -> None:
        table = self.config.newsletter_table
        self._mutate("delete subscriber", self.client.table(table).delete().eq("id", subscriber_id))

    def delete_all_newsletter_subscribers(self) -> None:
        table = self.config.newsletter_table
        self._mutate("delete all subscribers", self.client.table(table).delete().gte("id", 0))

    def get_newsletter_subscriber_count(self) -> int:
        return self._count(self.config.newsletter_table)

    # ------------------------------------------------------------------
    # site config
    # ------------------------------------------------------------------

    def get_site_config(self) -> dict[str, Any]:
        """Site configuration as a {key: value} dict."""
        table = self.config.site_config_table
        rows = self._fetch(table, self.client.table(table).select("key, value"))
        return {row["key"]: row["value"] for row in rows if "key" in row}

    def update_site_config(self, updates: list[dict[str, Any]]) -> None:
        """Upsert [{"key": ..., "value": ...}, ...] rows."""
        if not updates:
            return
        now = utc_now().isoformat()
        rows = [{"key": u["key"], "value": u["value"], "updated_at": now} for u in updates]
        table = self.config.site_config_table
        self._mutate("save settings", self.client.table(table).upsert(rows, on_conflict="key"))

    # ------------------------------------------------------------------
    # shared wishlists
    # ------------------------------------------------------------------

    def create_wishlist(self, item_ids: list[ItemId], expiry_days: int = 30, code_length: int = 8) -> str:
        """
        Store a wishlist under a short shareable code.

        Returns:
            The code
        """
        alphabet = string.ascii_uppercase + string.digits
        code = "".join(secrets.choice(alphabet) for _ in range(code_length))
        record = {
            "id": code,
            "item_ids": list(item_ids),
            "expires_at": (utc_now() + timedelta(days=expiry_days)).isoformat(),
        }
        table = self.config.wishlists_table
        self._mutate("share wishlist", self.client.table(table).insert(record))
        return code

    def get_wishlist(self, code: str) -> Optional[list[ItemId]]:
        """
        Look up a shared wishlist.

        Returns:
            The item ids, or None if the code is unknown or expired
        """
        table = self.config.wishlists_table
        rows = self._fetch(
            table,
            self.client.table(table)
            .select("item_ids, expires_at")
            .eq("id", code.strip().upper())
            .gt("expires_at", utc_now().isoformat()),
        )
        if not rows:
            return None
        item_ids = rows[0].get("item_ids") or []
        return item_ids if isinstance(item_ids, list) else None

    # ------------------------------------------------------------------
    # storage / auth
    # ------------------------------------------------------------------

    def get_storage_usage(self) -> int:
        """Total size in bytes of every object in both buckets."""
        total = 0
        for bucket in (self.config.items_bucket, self.config.reviews_bucket):
            offset = 0
            while True:
                try:
                    objects = self.client.storage.from_(bucket).list(
                        "", {"limit": STORAGE_PAGE_SIZE, "offset": offset}
                    )
                except Exception as e:
                    raise FetchFailure(f"Could not list bucket '{bucket}': {e}", source=bucket) from e
                for obj in objects or []:
                    metadata = obj.get("metadata") or {}
                    total += int(metadata.get("size") or 0)
                if not objects or len(objects) < STORAGE_PAGE_SIZE:
                    break
                offset += STORAGE_PAGE_SIZE
        return total

    def verify_session(self, access_token: str) -> Optional[str]:
        """
        Check an access token with Supabase auth.

        Returns:
            The user's email (or id), or None if the token is not valid
        """
        if not access_token:
            return None
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as e:
            console.print(f"[dim]Rejected admin token: {e}[/dim]")
            return None
        user = getattr(response, "user", None)
        if user is None:
            return None
        return getattr(user, "email", None) or getattr(user, "id", None)


async def download_image(url: str) -> tuple[bytes, str]:
    """
    Download an image so it can be re-uploaded to storage.

    Returns:
        (content, content_type)
    """
    headers = {
        "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
    }
    async with httpx.AsyncClient(headers=headers, follow_redirects=True) as http_client:
        response = await http_client.get(url, timeout=30.0)
        response.raise_for_status()
        return response.content, response.headers.get("content-type", "image/jpeg")
