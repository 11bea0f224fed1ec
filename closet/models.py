"""
Validated records read from the Supabase tables.

Only the fields the storefront uses are modelled; unknown columns are ignored.
"""

import re
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ItemId = Union[int, str]


class DisplayableItem(BaseModel):
    """Anything the rotation cache can pick: identity is by id only."""

    model_config = ConfigDict(extra="ignore")

    id: ItemId
    image_url: str = ""
    image_path: Optional[str] = None
    created_at: Optional[str] = None


class ClothingItem(DisplayableItem):
    """A row of clothing_items."""

    name: str = ""
    category: str = ""
    product_code: str = ""
    is_review: bool = False

    @field_validator("name", "category", mode="before")
    @classmethod
    def clean_text(cls, v: Optional[str]) -> str:
        if not v:
            return ""
        return re.sub(r"\s+", " ", str(v)).strip()

    @field_validator("is_review", mode="before")
    @classmethod
    def coerce_review_flag(cls, v) -> bool:
        return bool(v)


class ReviewImage(DisplayableItem):
    """A row of review_images."""

    alt_text: Optional[str] = None

    @field_validator("alt_text", mode="before")
    @classmethod
    def clean_alt_text(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        v = re.sub(r"\s+", " ", str(v)).strip()
        return v if v else None


class Category(BaseModel):
    """A row of categories."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    created_at: Optional[str] = None

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return re.sub(r"\s+", " ", v).strip()


class NewsletterSubscription(BaseModel):
    """A row of newsletter_subscriptions."""

    model_config = ConfigDict(extra="ignore")

    id: int
    email: str
    created_at: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ItemUpload(BaseModel):
    """A clothing item waiting to be uploaded."""

    category: str
    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "image/jpeg"
    name: Optional[str] = None
    product_code: Optional[str] = None


class ReviewUpload(BaseModel):
    """One review image waiting to be uploaded."""

    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "image/jpeg"
    alt_text: Optional[str] = None
