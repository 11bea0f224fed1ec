"""
Configuration settings for the Uy's Closet storefront.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from project root (SUPABASE_URL / SUPABASE_KEY)
load_dotenv(Path(__file__).parent.parent / ".env")


@dataclass
class SupabaseConfig:
    """Connection details for the hosted Supabase project."""

    url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    key: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_KEY"))

    # Tables
    items_table: str = "clothing_items"
    reviews_table: str = "review_images"
    categories_table: str = "categories"
    newsletter_table: str = "newsletter_subscriptions"
    site_config_table: str = "site_config"
    wishlists_table: str = "wishlists"

    # Storage buckets
    items_bucket: str = "clothing-images"
    reviews_bucket: str = "review-images"

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)


@dataclass
class CacheConfig:
    """Configuration for the display rotation caches and the local store."""

    store_path: Path = field(
        default_factory=lambda: Path(__file__).parent.parent / "data" / "local_store.json"
    )

    # 24 hours, in milliseconds (timestamps are stored as epoch ms)
    validity_ms: int = 24 * 60 * 60 * 1000

    featured_namespace: str = "uy-closet-featured-items"
    featured_count: int = 6
    reviews_namespace: str = "uy-closet-reviews-cache"
    reviews_count: int = 4

    # Written by every admin mutation so other sessions refetch
    items_last_updated_key: str = "uy-closet-items-last-updated"

    def ensure_dirs(self) -> None:
        """Create the store directory if it doesn't exist."""
        self.store_path.parent.mkdir(parents=True, exist_ok=True)


@dataclass
class CatalogConfig:
    """Configuration for collection browsing and the admin usage monitor."""

    items_per_page: int = 20
    all_category: str = "All"
    storage_limit_bytes: int = 1000 * 1024 * 1024  # 1000 MB

    # Usage monitor thresholds (percent)
    warning_percent: float = 75.0
    critical_percent: float = 90.0


@dataclass
class WishlistConfig:
    """Configuration for the local and shared wishlists."""

    storage_key: str = "uy-closet-wishlist"
    share_expiry_days: int = 30
    share_code_length: int = 8


@dataclass
class StorefrontConfig:
    """Main configuration combining all settings."""

    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    wishlist: WishlistConfig = field(default_factory=WishlistConfig)

    def ensure_dirs(self) -> None:
        """Ensure all necessary directories exist."""
        self.cache.ensure_dirs()


# Default configuration instance
config = StorefrontConfig()
