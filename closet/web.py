"""
Flask app serving the storefront as JSON.

Public routes cover the home page, the collection, reviews, site config,
newsletter sign-up and shared wishlists. Everything under /api/admin needs
an ``Authorization: Bearer <token>`` header accepted by Supabase auth.

The states are shared by every request, so run the server single-threaded.
"""

import base64
import functools
from typing import Optional

from flask import Flask, Response, g, jsonify, request
from rich.console import Console

from closet.admin.dashboard import export_subscribers, load_stats
from closet.catalog import CollectionBrowser
from closet.errors import ClosetError, FetchFailure, MutationFailure, setup_error_message
from closet.models import ItemUpload, ReviewUpload
from closet.state.site_config import contact_entries, social_links
from closet.storefront import Storefront

console = Console()


def _dump(items) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith("bearer "):
        return None
    return header[7:].strip() or None


def _file_payload(entry: dict) -> tuple[str, bytes, str]:
    """(filename, content, content_type) from a JSON upload entry with base64 content."""
    try:
        content = base64.b64decode(entry.get("content") or "", validate=True)
    except (ValueError, TypeError) as e:
        raise MutationFailure(f"Invalid image data: {e}", operation="upload") from e
    return (
        entry.get("filename") or "upload.jpg",
        content,
        entry.get("content_type") or "image/jpeg",
    )


def create_app(storefront: Storefront) -> Flask:
    """
    Build the Flask app around an existing storefront.

    Args:
        storefront: States and service shared by all requests

    Returns:
        The Flask app
    """
    app = Flask(__name__)
    app.config["STOREFRONT"] = storefront
    sf = storefront

    def require_admin(view):
        @functools.wraps(view)
        async def wrapper(*args, **kwargs):
            token = _bearer_token()
            user = sf.service.verify_session(token) if token else None
            if not user:
                return jsonify({"error": "Unauthorized"}), 401
            g.admin_user = user
            return await view(*args, **kwargs)

        return wrapper

    @app.errorhandler(MutationFailure)
    def handle_mutation_failure(e: MutationFailure):
        return jsonify({"error": str(e), "operation": e.operation}), 400

    @app.errorhandler(FetchFailure)
    def handle_fetch_failure(e: FetchFailure):
        return jsonify({"error": setup_error_message(e) or str(e)}), 502

    # ------------------------------------------------------------------
    # public
    # ------------------------------------------------------------------

    @app.route("/api/featured")
    async def featured():
        await sf.featured.ensure_fresh()
        return jsonify(
            {
                "featured": _dump(sf.featured.featured_items),
                "slideshow": _dump(sf.featured.all_items),
            }
        )

    @app.route("/api/collection")
    async def collection():
        await sf.featured.ensure_fresh()
        browser = CollectionBrowser(sf.featured.all_items, sf.config.catalog)
        browser.select_category(request.args.get("category", sf.config.catalog.all_category))
        page = request.args.get("page", 1, type=int)
        if page != 1 and not browser.go_to_page(page):
            return jsonify({"error": f"Page {page} is out of range (1-{browser.total_pages})"}), 404
        return jsonify(browser.page_summary())

    @app.route("/api/reviews")
    async def reviews():
        await sf.reviews.ensure_fresh()
        return jsonify(
            {
                "displayed": _dump(sf.reviews.displayed_review_images),
                "all": _dump(sf.reviews.review_images),
            }
        )

    @app.route("/api/site-config")
    async def site_config():
        await sf.site_config.ensure_loaded()
        cfg = sf.site_config.config
        return jsonify(
            {
                "config": cfg,
                "contacts": contact_entries(cfg),
                "socials": social_links(cfg),
                "error": sf.site_config.error,
            }
        )

    @app.route("/api/newsletter", methods=["POST"])
    async def subscribe():
        data = request.get_json(silent=True) or {}
        subscription = sf.service.add_newsletter_subscriber(data.get("email", ""))
        return jsonify({"success": True, "email": subscription.email}), 201

    @app.route("/api/items")
    async def items_by_ids():
        ids = [i for i in request.args.get("ids", "").split(",") if i.strip()]
        if not ids:
            return jsonify({"items": []})
        items = sf.service.get_clothing_items_by_ids([int(i) if i.isdigit() else i for i in ids])
        return jsonify({"items": _dump(items)})

    @app.route("/api/wishlists", methods=["POST"])
    async def share_wishlist():
        data = request.get_json(silent=True) or {}
        item_ids = data.get("item_ids") or []
        if not isinstance(item_ids, list) or not item_ids:
            return jsonify({"error": "Your wishlist is empty. Add items to share them."}), 400
        code = sf.service.create_wishlist(
            item_ids,
            expiry_days=sf.config.wishlist.share_expiry_days,
            code_length=sf.config.wishlist.share_code_length,
        )
        return jsonify({"code": code}), 201

    @app.route("/api/wishlists/<code>")
    async def shared_wishlist(code: str):
        shared = await sf.wishlist.open_shared(code)
        if shared.error:
            return jsonify({"code": shared.code, "error": shared.error}), 404
        return jsonify({"code": shared.code, "items": _dump(shared.items)})

    # ------------------------------------------------------------------
    # admin
    # ------------------------------------------------------------------

    @app.route("/api/admin/stats")
    @require_admin
    async def admin_stats():
        stats = await load_stats(sf.service, sf.notifier, sf.config.catalog)
        if stats is None:
            return jsonify({"error": "Failed to load dashboard stats."}), 502
        return jsonify(stats.to_dict())

    @app.route("/api/admin/items")
    @require_admin
    async def admin_items():
        await sf.inventory.ensure_fresh()
        return jsonify({"items": _dump(sf.inventory.items)})

    @app.route("/api/admin/items", methods=["POST"])
    @require_admin
    async def admin_add_item():
        data = request.get_json(silent=True) or {}
        filename, content, content_type = _file_payload(data)
        item = await sf.inventory.add_item(
            ItemUpload(
                category=data.get("category") or "",
                filename=filename,
                content=content,
                content_type=content_type,
                name=data.get("name"),
                product_code=data.get("product_code"),
            )
        )
        return jsonify(item.model_dump(mode="json")), 201

    @app.route("/api/admin/items/<item_id>", methods=["DELETE"])
    @require_admin
    async def admin_delete_item(item_id: str):
        await sf.inventory.delete_item(int(item_id) if item_id.isdigit() else item_id)
        return jsonify({"success": True})

    @app.route("/api/admin/items", methods=["DELETE"])
    @require_admin
    async def admin_delete_all_items():
        await sf.inventory.delete_all_items()
        return jsonify({"success": True})

    @app.route("/api/admin/reviews", methods=["POST"])
    @require_admin
    async def admin_add_reviews():
        data = request.get_json(silent=True) or {}
        uploads = []
        for entry in data.get("images") or []:
            filename, content, content_type = _file_payload(entry)
            uploads.append(
                ReviewUpload(
                    filename=filename,
                    content=content,
                    content_type=content_type,
                    alt_text=entry.get("alt_text"),
                )
            )
        if not uploads:
            return jsonify({"error": "Please select at least one image."}), 400
        created = await sf.reviews.add_images(uploads)
        return jsonify({"images": _dump(created)}), 201

    @app.route("/api/admin/reviews/<image_id>", methods=["DELETE"])
    @require_admin
    async def admin_delete_review(image_id: str):
        await sf.reviews.delete_image(int(image_id) if image_id.isdigit() else image_id)
        return jsonify({"success": True})

    @app.route("/api/admin/reviews", methods=["DELETE"])
    @require_admin
    async def admin_delete_all_reviews():
        await sf.reviews.delete_all_images()
        return jsonify({"success": True})

    @app.route("/api/admin/categories")
    @require_admin
    async def admin_categories():
        await sf.categories.ensure_fresh()
        return jsonify({"categories": _dump(sf.categories.items)})

    @app.route("/api/admin/categories", methods=["POST"])
    @require_admin
    async def admin_add_category():
        data = request.get_json(silent=True) or {}
        category = await sf.categories.add_category(data.get("name", ""))
        return jsonify(category.model_dump(mode="json")), 201

    @app.route("/api/admin/categories/<int:category_id>", methods=["DELETE"])
    @require_admin
    async def admin_delete_category(category_id: int):
        await sf.categories.delete_item(category_id)
        return jsonify({"success": True})

    @app.route("/api/admin/newsletter")
    @require_admin
    async def admin_subscribers():
        await sf.subscribers.fetch()
        return jsonify({"subscribers": _dump(sf.subscribers.items)})

    @app.route("/api/admin/newsletter/<int:subscriber_id>", methods=["DELETE"])
    @require_admin
    async def admin_delete_subscriber(subscriber_id: int):
        await sf.subscribers.delete_item(subscriber_id)
        return jsonify({"success": True})

    @app.route("/api/admin/newsletter", methods=["DELETE"])
    @require_admin
    async def admin_delete_all_subscribers():
        await sf.subscribers.delete_all_items()
        return jsonify({"success": True})

    @app.route("/api/admin/newsletter/export")
    @require_admin
    async def admin_export_subscribers():
        await sf.subscribers.fetch()
        export = export_subscribers(sf.subscribers.items, sf.notifier)
        if export is None:
            return jsonify({"error": "No subscribers to export."}), 404
        filename, content = export
        return Response(
            content,
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.route("/api/admin/settings")
    @require_admin
    async def admin_settings():
        await sf.site_config.fetch()
        return jsonify({"config": sf.site_config.config, "error": sf.site_config.error})

    @app.route("/api/admin/settings", methods=["PUT"])
    @require_admin
    async def admin_save_settings():
        data = request.get_json(silent=True) or {}
        await sf.site_config.ensure_loaded()
        for section, value in data.items():
            sf.site_config.edit(section, str(value))
        await sf.site_config.save()
        return jsonify({"config": sf.site_config.config})

    @app.route("/api/admin/cache", methods=["DELETE"])
    @require_admin
    async def admin_clear_cache():
        sf.clear_rotation_caches()
        console.print(f"[dim]Rotation caches cleared by {g.admin_user}[/dim]")
        return jsonify({"success": True})

    @app.errorhandler(ClosetError)
    def handle_closet_error(e: ClosetError):
        return jsonify({"error": str(e)}), 500

    return app
