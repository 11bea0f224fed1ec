#!/usr/bin/env python3
"""
Export the shop catalog from Supabase to a single JSON file.

Useful as a backup before a wipe, or to seed another project. Includes
clothing items, review images, categories and the site configuration;
newsletter subscribers only with --subscribers.

Usage:
    python scripts/export_catalog_to_json.py
    python scripts/export_catalog_to_json.py -o backup.json
    python scripts/export_catalog_to_json.py --subscribers

Requires: SUPABASE_URL and SUPABASE_KEY (or .env).
Run from project root.
"""

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

# Project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rich.console import Console

from config.settings import config
from closet.errors import ClosetError, setup_error_message
from closet.services.supabase_service import SupabaseService

console = Console()


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Export the Uy's Closet catalog to a JSON file."
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output JSON file path (default: data/catalog_export.json)",
    )
    parser.add_argument(
        "--subscribers",
        action="store_true",
        help="Include newsletter subscriber emails",
    )
    args = parser.parse_args()

    try:
        service = SupabaseService(config.supabase)
    except ClosetError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    out_path = args.output
    if out_path is None:
        out_path = Path("data/catalog_export.json")
    out_path = out_path.resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)

    console.print("[cyan]Fetching catalog from Supabase...[/cyan]")
    try:
        items = service.get_clothing_items()
        reviews = service.get_review_images()
        categories = service.get_categories()
        site_config = service.get_site_config()
        subscribers = service.get_newsletter_subscribers() if args.subscribers else []
    except ClosetError as e:
        console.print(f"[red]Supabase query failed: {setup_error_message(e) or e}[/red]")
        return 1

    payload = {
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "total_items": len(items),
        "total_review_images": len(reviews),
        "clothing_items": [i.model_dump(mode="json") for i in items],
        "review_images": [r.model_dump(mode="json") for r in reviews],
        "categories": [c.model_dump(mode="json") for c in categories],
        "site_config": site_config,
    }
    if args.subscribers:
        payload["newsletter_subscriptions"] = [s.model_dump(mode="json") for s in subscribers]

    with open(out_path, "w") as f:
        json.dump(payload, f, indent=2)

    console.print(
        f"[green]Exported {len(items)} item(s) and {len(reviews)} review image(s) "
        f"to [bold]{out_path}[/bold][/green]"
    )
    if not items:
        console.print("[yellow]The catalog is empty.[/yellow]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
