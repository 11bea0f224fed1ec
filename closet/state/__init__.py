"""Page and admin state kept in sync with the remote collections."""

from .admin_lists import CategoryState, InventoryState, SubscriberState
from .collection import CollectionState
from .featured import FeaturedItems, featured_rotation
from .mutations import transactional_mutation
from .reviews import ReviewsState
from .site_config import SiteConfigState
from .wishlist import SharedWishlist, Wishlist

__all__ = [
    "CategoryState",
    "CollectionState",
    "FeaturedItems",
    "InventoryState",
    "ReviewsState",
    "SharedWishlist",
    "SiteConfigState",
    "SubscriberState",
    "Wishlist",
    "featured_rotation",
    "transactional_mutation",
]
