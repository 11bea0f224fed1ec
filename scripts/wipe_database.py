#!/usr/bin/env python3
"""
Wipe the shop's content from Supabase.

Deletes every clothing item and review image (rows and their stored photos)
and, with --subscribers, the newsletter list. The local featured/review
rotation caches are cleared afterwards so no stale picks survive.

Usage:
    python scripts/wipe_database.py
    python scripts/wipe_database.py --dry-run
    python scripts/wipe_database.py --force --subscribers

Requires: SUPABASE_URL and SUPABASE_KEY (or .env)
Run from project root.
"""

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from config.settings import config
from closet.cache.rotation import RotationCache
from closet.cache.store import JsonFileStore
from closet.errors import ClosetError, setup_error_message
from closet.services.supabase_service import SupabaseService
from closet.state.featured import featured_rotation

CONFIRM_PROMPT = """
⚠️  WARNING: This will permanently delete:
   - All clothing items and their images
   - All review images
{subscribers}
Type 'DELETE EVERYTHING' to confirm: """


def get_counts(service: SupabaseService, include_subscribers: bool) -> dict[str, int]:
    """Row counts for every table that will be wiped."""
    counts = {
        config.supabase.items_table: service.get_clothing_item_count(),
        config.supabase.reviews_table: service.get_review_image_count(),
    }
    if include_subscribers:
        counts[config.supabase.newsletter_table] = service.get_newsletter_subscriber_count()
    return counts


def clear_local_caches() -> None:
    store = JsonFileStore(config.cache.store_path)
    featured_rotation(store, config.cache).clear()
    RotationCache(store, config.cache.reviews_namespace, config.cache.reviews_count).clear()


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Safely wipe all items and review images from Supabase."
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompt",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without actually deleting",
    )
    parser.add_argument(
        "--subscribers",
        action="store_true",
        help="Also delete every newsletter subscriber",
    )
    args = parser.parse_args()

    # Safety: block in production unless --force
    if os.getenv("ENVIRONMENT") == "production" and not args.force:
        print("ERROR: Cannot wipe database in production environment.")
        print("Set ENVIRONMENT=production only in production. Aborting.")
        return 1

    try:
        service = SupabaseService(config.supabase)
        counts = get_counts(service, args.subscribers)
    except ClosetError as e:
        print(f"ERROR: {setup_error_message(e) or e}")
        return 1

    total = sum(counts.values())
    if total == 0 and not args.dry_run:
        print("Database is already empty. Nothing to delete.")
        return 0

    if args.dry_run:
        print("DRY RUN - no data will be deleted.\n")
        for table, n in counts.items():
            print(f"  {table}: {n} rows")
        print(f"\n  Total: {total} rows would be deleted.")
        return 0

    if not args.force:
        extra = "   - All newsletter subscribers\n" if args.subscribers else ""
        confirm = input(CONFIRM_PROMPT.format(subscribers=extra)).strip()
        if confirm != "DELETE EVERYTHING":
            print("Aborted. Confirmation text did not match.")
            return 1

    steps = [
        (config.supabase.items_table, service.delete_all_clothing_items),
        (config.supabase.reviews_table, service.delete_all_review_images),
    ]
    if args.subscribers:
        steps.append((config.supabase.newsletter_table, service.delete_all_newsletter_subscribers))

    print()
    failed = False
    for table, delete in steps:
        print(f"Deleting {table}... ", end="", flush=True)
        try:
            delete()
        except ClosetError as e:
            failed = True
            print(f"✗ ({setup_error_message(e) or e})")
        else:
            print(f"✓ ({counts.get(table, 0)} rows deleted)")

    clear_local_caches()
    print("Cleared local rotation caches.")
    print()
    if failed:
        print("⚠️  Some tables could not be wiped.")
        return 1
    print("✅ Database wiped successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
