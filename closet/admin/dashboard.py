"""
Admin dashboard: counts, storage usage monitor and the subscriber CSV export.
"""

import asyncio
import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Literal, Optional, Sequence

from rich.console import Console

from config.settings import CatalogConfig, config
from closet.errors import ClosetError
from closet.models import NewsletterSubscription
from closet.notify import Notifier

console = Console()

UsageLevel = Literal["normal", "warning", "critical"]

BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """
    Human-readable size: 0 -> '0 Bytes', 1536 -> '1.5 KB'.

    Trailing zeros after the decimal point are dropped.
    """
    if num_bytes <= 0:
        return "0 Bytes"
    index = 0
    value = float(num_bytes)
    while value >= 1024 and index < len(BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.{max(decimals, 0)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[index]}"


def usage_percentage(used_bytes: int, limit_bytes: int) -> float:
    if limit_bytes <= 0:
        return 100.0
    return min(used_bytes / limit_bytes * 100, 100.0)


def usage_level(percentage: float, catalog_config: Optional[CatalogConfig] = None) -> UsageLevel:
    catalog_config = catalog_config or config.catalog
    if percentage > catalog_config.critical_percent:
        return "critical"
    if percentage > catalog_config.warning_percent:
        return "warning"
    return "normal"


@dataclass
class DashboardStats:
    """Numbers shown on the dashboard cards."""

    clothing_items: int = 0
    review_images: int = 0
    storage_used_bytes: int = 0
    subscribers: int = 0
    storage_limit_bytes: int = config.catalog.storage_limit_bytes
    catalog_config: Optional[CatalogConfig] = None

    @property
    def total_images(self) -> int:
        return self.clothing_items + self.review_images

    @property
    def usage_percentage(self) -> float:
        return usage_percentage(self.storage_used_bytes, self.storage_limit_bytes)

    @property
    def usage_level(self) -> UsageLevel:
        return usage_level(self.usage_percentage, self.catalog_config)

    def to_dict(self) -> dict:
        return {
            "clothing_items": self.clothing_items,
            "review_images": self.review_images,
            "total_images": self.total_images,
            "subscribers": self.subscribers,
            "storage_used_bytes": self.storage_used_bytes,
            "storage_used": format_bytes(self.storage_used_bytes),
            "storage_limit": format_bytes(self.storage_limit_bytes),
            "usage_percentage": round(self.usage_percentage, 2),
            "usage_level": self.usage_level,
        }


async def load_stats(
    service,
    notifier: Notifier,
    catalog_config: Optional[CatalogConfig] = None,
) -> Optional[DashboardStats]:
    """
    Load every dashboard number at once.

    Args:
        service: SupabaseService
        notifier: Receives the error notice on failure
        catalog_config: Supplies the storage limit

    Returns:
        The stats, or None if any of the lookups failed
    """
    catalog_config = catalog_config or config.catalog
    try:
        items, reviews, used, subscribers = await asyncio.gather(
            asyncio.to_thread(service.get_clothing_item_count),
            asyncio.to_thread(service.get_review_image_count),
            asyncio.to_thread(service.get_storage_usage),
            asyncio.to_thread(service.get_newsletter_subscriber_count),
        )
    except ClosetError as e:
        console.print(f"[red]Failed to load dashboard stats: {e}[/red]")
        notifier.notify("error", "Failed to load dashboard stats.")
        return None

    return DashboardStats(
        clothing_items=items,
        review_images=reviews,
        storage_used_bytes=used,
        subscribers=subscribers,
        storage_limit_bytes=catalog_config.storage_limit_bytes,
        catalog_config=catalog_config,
    )


def iso_timestamp(value: str) -> str:
    """Normalise a Supabase timestamp to UTC ISO form with milliseconds: 2024-05-01T10:00:00.000Z."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def subscribers_csv(subscribers: Sequence[NewsletterSubscription]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write("Email,SubscribedAt\n")
    for sub in subscribers:
        writer.writerow([sub.email, iso_timestamp(sub.created_at)])
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"uys-closet-subscribers-{today.isoformat()}.csv"


def export_subscribers(
    subscribers: Sequence[NewsletterSubscription],
    notifier: Notifier,
    today: Optional[date] = None,
) -> Optional[tuple[str, str]]:
    """
    Build the subscriber export.

    Returns:
        (filename, csv_text), or None if there is nobody to export
    """
    if not subscribers:
        notifier.notify("error", "No subscribers to export.")
        return None
    content = subscribers_csv(subscribers)
    notifier.notify("success", "Subscriber list exported.")
    return export_filename(today), content
