#!/usr/bin/env python3
"""
Uy's Closet - Main Entry Point

Runs the storefront JSON server and the day-to-day admin chores from the
terminal: dashboard stats, subscriber export, rotation cache reset, adding
items and managing the local wishlist.

Usage:
    python main.py --serve                  # Start the web app on port 5000
    python main.py --stats                  # Dashboard numbers
    python main.py --featured               # Today's featured picks
"""
import argparse
import asyncio
import sys
from pathlib import Path

import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.table import Table

from config.settings import config
from closet.admin.dashboard import export_subscribers, format_bytes, load_stats
from closet.errors import ClosetError, ConfigurationError
from closet.models import ItemUpload
from closet.services.supabase_service import download_image
from closet.state.site_config import contact_entries, social_links
from closet.storefront import Storefront, build_storefront

console = Console()


class CustomHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Custom formatter that preserves formatting and adds width."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=40, width=100)


def parse_args(argv=None):
    """Parse command line arguments."""
    epilog = """
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
EXAMPLES
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  Web app:
    python main.py --serve                  http://localhost:5000
    python main.py --serve --port 8080      Custom port

  Storefront:
    python main.py --featured               Featured items + review picks
    python main.py --contact                Contact details shown on the site
    python main.py --clear-cache            Draw new featured/review picks

  Admin:
    python main.py --stats                  Item, image, storage and subscriber counts
    python main.py --export-subscribers     Write the newsletter CSV
    python main.py --add-item --category Dresses --image ./dress.jpg
    python main.py --add-item --category Tops --image https://example.com/top.jpg

  Wishlist (kept in the local store):
    python main.py --wishlist               List wishlisted items
    python main.py --wishlist-add 12        Add item 12
    python main.py --share-wishlist         Get a code valid for 30 days
    python main.py --open-wishlist ABCD1234 Show someone else's wishlist

━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
NOTES
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  • Requires .env file with SUPABASE_URL and SUPABASE_KEY
  • Featured and review picks stay the same for 24 hours
  • Local state lives in data/local_store.json
"""

    parser = argparse.ArgumentParser(
        prog="python main.py",
        description="""
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
                               UY'S CLOSET
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
Storefront server and admin tools for the Uy's Closet shop.
""",
        epilog=epilog,
        formatter_class=CustomHelpFormatter,
    )

    server_group = parser.add_argument_group("Web App", "Run the JSON storefront")
    server_group.add_argument("--serve", action="store_true", help="Start the Flask app")
    server_group.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    server_group.add_argument("--port", type=int, default=5000, help="Port to run the server on (default: 5000)")
    server_group.add_argument("--debug", action="store_true", help="Enable Flask debug mode")

    shop_group = parser.add_argument_group("Storefront", "What shoppers see")
    shop_group.add_argument("--featured", action="store_true", help="Show the current featured and review picks")
    shop_group.add_argument("--contact", action="store_true", help="Show contact details and social links")
    shop_group.add_argument("--clear-cache", action="store_true", help="Clear the featured and review rotation caches")

    admin_group = parser.add_argument_group("Admin", "Inventory and newsletter")
    admin_group.add_argument("--stats", action="store_true", help="Show dashboard statistics")
    admin_group.add_argument(
        "--export-subscribers",
        nargs="?",
        const=".",
        metavar="DIR",
        help="Export newsletter subscribers to CSV (default: current directory)",
    )
    admin_group.add_argument("--add-item", action="store_true", help="Upload a clothing item")
    admin_group.add_argument("--category", type=str, help="Category for --add-item")
    admin_group.add_argument("--image", type=str, help="Image file path or URL for --add-item")
    admin_group.add_argument("--name", type=str, help="Optional item name for --add-item")

    wishlist_group = parser.add_argument_group("Wishlist", "Local wishlist and share codes")
    wishlist_group.add_argument("--wishlist", action="store_true", help="List wishlisted items")
    wishlist_group.add_argument("--wishlist-add", type=str, metavar="ID", help="Add an item to the wishlist")
    wishlist_group.add_argument("--wishlist-remove", type=str, metavar="ID", help="Remove an item from the wishlist")
    wishlist_group.add_argument("--share-wishlist", action="store_true", help="Create a shareable wishlist code")
    wishlist_group.add_argument("--open-wishlist", type=str, metavar="CODE", help="Show a shared wishlist")

    return parser.parse_args(argv)


def _item_id(raw: str):
    return int(raw) if raw.isdigit() else raw


def _items_table(title: str, items) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name / Alt text")
    table.add_column("Category", style="magenta")
    table.add_column("Image", style="dim")
    for item in items:
        label = getattr(item, "name", None) or getattr(item, "alt_text", None) or ""
        table.add_row(str(item.id), label, getattr(item, "category", ""), item.image_url)
    return table


async def show_stats(sf: Storefront) -> int:
    stats = await load_stats(sf.service, sf.notifier, sf.config.catalog)
    if stats is None:
        return 1

    level_style = {"normal": "green", "warning": "yellow", "critical": "red"}[stats.usage_level]
    table = Table(title="Dashboard")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Clothing items", str(stats.clothing_items))
    table.add_row("Review images", str(stats.review_images))
    table.add_row("Total images", str(stats.total_images))
    table.add_row("Newsletter subscribers", str(stats.subscribers))
    table.add_row(
        "Storage used",
        f"[{level_style}]{format_bytes(stats.storage_used_bytes)} / "
        f"{format_bytes(stats.storage_limit_bytes)} ({stats.usage_percentage:.1f}%)[/{level_style}]",
    )
    console.print(table)
    if stats.usage_level == "critical":
        console.print("[red]Storage is almost full. Delete old images before uploading more.[/red]")
    elif stats.usage_level == "warning":
        console.print("[yellow]Storage is over 75% full.[/yellow]")
    return 0


async def show_featured(sf: Storefront) -> int:
    await sf.featured.ensure_fresh()
    await sf.reviews.ensure_fresh()
    console.print(_items_table("Featured items", sf.featured.featured_items))
    console.print(_items_table("Customer reviews", sf.reviews.displayed_review_images))
    console.print(
        f"[dim]{len(sf.featured.all_items)} items in the collection, "
        f"{len(sf.reviews.review_images)} review images[/dim]"
    )
    return 0


async def show_contact(sf: Storefront) -> int:
    await sf.site_config.fetch()
    if sf.site_config.error:
        console.print(f"[yellow]{sf.site_config.error}[/yellow]")
    for entry in contact_entries(sf.site_config.config):
        console.print(f"[cyan]{entry['name']}:[/cyan] {entry['value']} [dim]({entry['href']})[/dim]")
    for link in social_links(sf.site_config.config):
        console.print(f"[cyan]{link['name']}:[/cyan] {link['handle']} [dim]({link['href']})[/dim]")
    return 0


async def export_newsletter(sf: Storefront, out_dir: str) -> int:
    await sf.subscribers.fetch()
    export = export_subscribers(sf.subscribers.items, sf.notifier)
    if export is None:
        return 1
    filename, content = export
    path = Path(out_dir) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    console.print(f"[green]✓ Wrote {len(sf.subscribers.items)} subscribers to {path}[/green]")
    return 0


async def add_item(sf: Storefront, category: str, image: str, name=None) -> int:
    if image.startswith(("http://", "https://")):
        try:
            content, content_type = await download_image(image)
        except httpx.HTTPError as e:
            console.print(f"[red]Failed to download image: {e}[/red]")
            return 1
        filename = image.rsplit("/", 1)[-1].split("?", 1)[0] or "image.jpg"
    else:
        path = Path(image)
        if not path.exists():
            console.print(f"[red]Image not found: {path}[/red]")
            return 1
        content = path.read_bytes()
        filename = path.name
        content_type = "image/png" if path.suffix.lower() == ".png" else "image/jpeg"

    await sf.inventory.fetch()
    item = await sf.inventory.add_item(
        ItemUpload(
            category=category,
            filename=filename,
            content=content,
            content_type=content_type,
            name=name,
        )
    )
    console.print(f"[dim]Item {item.id} stored at {item.image_url}[/dim]")
    return 0


async def wishlist_command(sf: Storefront, args) -> int:
    wishlist = sf.wishlist
    if args.wishlist_add:
        if not wishlist.add(_item_id(args.wishlist_add)):
            console.print("[dim]Already in your wishlist[/dim]")
    if args.wishlist_remove:
        if not wishlist.remove(_item_id(args.wishlist_remove)):
            console.print("[dim]Not in your wishlist[/dim]")
    if args.share_wishlist:
        code = await wishlist.share()
        if code is None:
            return 1
        console.print(f"\n[bold]Share code:[/bold] [cyan]{code}[/cyan]")
    if args.open_wishlist:
        shared = await wishlist.open_shared(args.open_wishlist)
        if shared.error:
            console.print(f"[red]{shared.error}[/red]")
            return 1
        console.print(_items_table(f"Wishlist {shared.code}", shared.items))
    if args.wishlist:
        items = await wishlist.resolve_items()
        if not items:
            console.print("[yellow]Your wishlist is empty.[/yellow]")
        else:
            console.print(_items_table("Your wishlist", items))
    return 0


def serve(sf: Storefront, host: str, port: int, debug: bool) -> int:
    from closet.web import create_app

    app = create_app(sf)
    console.print("\n[bold cyan]═══════════════════════════════════════════[/bold cyan]")
    console.print("[bold cyan]               UY'S CLOSET                 [/bold cyan]")
    console.print("[bold cyan]═══════════════════════════════════════════[/bold cyan]\n")
    console.print(f"[dim]Supabase:[/dim]    {sf.config.supabase.url}")
    console.print(f"[dim]Local store:[/dim] {sf.config.cache.store_path}")
    console.print(f"\n  🌐  [underline cyan]http://{host}:{port}[/underline cyan]")
    console.print("[dim]Press CTRL+C to stop the server[/dim]\n")
    # States are shared between requests; one request at a time
    app.run(host=host, port=port, debug=debug, threaded=False)
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.add_item and (not args.category or not args.image):
        console.print("[red]--add-item needs --category and --image[/red]")
        return 2

    try:
        sf = build_storefront(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    try:
        if args.serve:
            return serve(sf, args.host, args.port, args.debug)
        if args.clear_cache:
            sf.clear_rotation_caches()
            console.print("[green]✓ Cleared featured and review rotation caches[/green]")
            return 0
        if args.stats:
            return asyncio.run(show_stats(sf))
        if args.featured:
            return asyncio.run(show_featured(sf))
        if args.contact:
            return asyncio.run(show_contact(sf))
        if args.export_subscribers:
            return asyncio.run(export_newsletter(sf, args.export_subscribers))
        if args.add_item:
            return asyncio.run(add_item(sf, args.category, args.image, args.name))
        if any([args.wishlist, args.wishlist_add, args.wishlist_remove, args.share_wishlist, args.open_wishlist]):
            return asyncio.run(wishlist_command(sf, args))

        console.print("[yellow]Nothing to do. Run with --help to see the available commands.[/yellow]")
        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user[/yellow]")
        return 130
    except ClosetError as e:
        console.print(f"\n[bold red]Error: {e}[/bold red]")
        return 1
    finally:
        sf.close()


if __name__ == "__main__":
    sys.exit(main())
