"""
Uy's Closet storefront.

Shop data lives in Supabase; the featured items and review picks rotate
daily through a local rotation cache, and admin edits are applied
optimistically then reconciled with the server.
"""

from .storefront import Storefront, build_storefront

__all__ = ["Storefront", "build_storefront"]
