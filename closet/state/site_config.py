"""
Site configuration: contact details and social handles shown on every page.
"""

import copy
import re
from typing import Any, Optional

from rich.console import Console

from closet.errors import ClosetError, MutationFailure, setup_error_message
from closet.notify import Notifier

console = Console()

DEFAULT_CONFIG: dict[str, dict[str, str]] = {
    "contact_email": {"value": "your-email@example.com", "href": "mailto:your-email@example.com"},
    "contact_whatsapp": {"value": "Your WhatsApp Number", "href": "#"},
    "contact_phone": {"value": "Your Phone Number", "href": "#"},
    "social_instagram": {"href": "#", "handle": "@your_handle"},
    "social_tiktok": {"href": "#", "handle": "@your_handle"},
}

CONTACT_SECTIONS = (
    ("Email", "contact_email"),
    ("WhatsApp", "contact_whatsapp"),
    ("Phone", "contact_phone"),
)
SOCIAL_SECTIONS = (
    ("Instagram", "social_instagram"),
    ("TikTok", "social_tiktok"),
)


def to_snake_case(key: str) -> str:
    """contactEmail -> contact_email (snake_case input is returned unchanged)."""
    return re.sub(r"([A-Z])", r"_\1", key).lower()


def build_section(section: str, value: str) -> Any:
    """
    Turn what the admin typed into a stored section with a derived link.

    Unknown sections are stored as the raw value.
    """
    section = to_snake_case(section)
    value = (value or "").strip()
    if section == "contact_email":
        return {"value": value, "href": f"mailto:{value}"}
    if section == "contact_whatsapp":
        return {"value": value, "href": f"https://wa.me/{re.sub(r'[^+0-9]', '', value)}"}
    if section == "contact_phone":
        return {"value": value, "href": f"tel:{re.sub(r'[^0-9]', '', value)}"}
    if section == "social_instagram":
        name = value.replace("@", "")
        return {"handle": f"@{name}", "href": f"https://instagram.com/{name}"}
    if section == "social_tiktok":
        name = value.replace("@", "")
        return {"handle": f"@{name}", "href": f"https://tiktok.com/@{name}"}
    return value


def merge_with_defaults(fetched: dict[str, Any]) -> dict[str, Any]:
    """
    Fetched sections over defaults.

    Only the known sections are kept. A fetched section that is empty or not
    an object falls back to its default.
    """
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in fetched.items():
        key = to_snake_case(key)
        if key in merged and value and isinstance(value, dict):
            merged[key] = value
    return merged


def _is_link(href: Optional[str]) -> bool:
    return bool(href) and href != "#"


def contact_entries(site_config: dict[str, Any]) -> list[dict[str, str]]:
    """Contact cards to show: entries without a usable link are hidden."""
    entries = []
    for name, key in CONTACT_SECTIONS:
        section = site_config.get(key)
        if not isinstance(section, dict):
            continue
        if section.get("value") and _is_link(section.get("href")):
            entries.append({"name": name, "value": section["value"], "href": section["href"]})
    return entries


def social_links(site_config: dict[str, Any]) -> list[dict[str, str]]:
    links = []
    for name, key in SOCIAL_SECTIONS:
        section = site_config.get(key)
        if not isinstance(section, dict):
            continue
        if _is_link(section.get("href")):
            links.append({"name": name, "href": section["href"], "handle": section.get("handle", "")})
    return links


class SiteConfigState:
    """Loaded configuration plus the admin's unsaved edits."""

    def __init__(self, service, notifier: Notifier):
        self.service = service
        self.notifier = notifier
        self.config: dict[str, Any] = {}
        self.loading = False
        self.loaded = False
        self.error: Optional[str] = None
        self.dirty = False

    async def fetch(self) -> None:
        """Load the configuration; any failure falls back to the defaults."""
        self.loading = True
        self.error = None
        try:
            self.config = merge_with_defaults(self.service.get_site_config())
        except ClosetError as e:
            console.print(f"[red]Failed to load site configuration: {e}[/red]")
            self.error = setup_error_message(e) or "Failed to load site configuration."
            self.config = copy.deepcopy(DEFAULT_CONFIG)
        finally:
            self.loading = False
        self.loaded = True
        self.dirty = False

    async def ensure_loaded(self) -> None:
        if not self.loaded:
            await self.fetch()

    def edit(self, section: str, value: str) -> None:
        self.config = {**self.config, to_snake_case(section): build_section(section, value)}
        self.dirty = True

    async def save(self) -> None:
        """
        Upsert every section, then reload.

        Raises:
            MutationFailure: If the upsert fails (edits are kept)
        """
        updates = [{"key": to_snake_case(key), "value": value} for key, value in self.config.items()]
        correlation_id = "settings-save"
        self.notifier.notify("loading", "Saving settings...", correlation_id)
        try:
            self.service.update_site_config(updates)
        except MutationFailure as e:
            self.notifier.notify("error", str(e), correlation_id)
            raise
        await self.fetch()
        self.notifier.notify("success", "Settings saved!", correlation_id)
