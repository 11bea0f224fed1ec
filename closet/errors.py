"""
Error types for the storefront.

Nothing here is fatal to the process: the worst outcome of any of these
errors is a stale or empty display, recovered by the next successful fetch.
"""

from typing import Optional

SETUP_TABLE_HINT = (
    "The store database is not set up yet (missing table '{table}'). "
    "Please run the setup SQL from the Admin page."
)
SETUP_BUCKET_HINT = (
    "The storage bucket is missing. Please create it from the Admin page setup guide."
)


class ClosetError(Exception):
    """Base class for storefront errors."""


class ConfigurationError(ClosetError):
    """Raised when Supabase credentials are missing or invalid."""


class FetchFailure(ClosetError):
    """The remote collection could not be read."""

    def __init__(self, message: str, *, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class MutationFailure(ClosetError):
    """An insert or delete was rejected by the remote collection."""

    def __init__(self, message: str, *, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class CacheCorruption(ClosetError):
    """A persisted cache value could not be parsed."""

    def __init__(self, key: str, raw: Optional[str]):
        super().__init__(f"Corrupted cache value under '{key}': {raw!r}")
        self.key = key
        self.raw = raw


def setup_error_message(error: BaseException) -> Optional[str]:
    """
    Map a backend error to an actionable setup message.

    Supabase reports a missing table as PostgREST code 42P01 / PGRST205
    ("relation ... does not exist") and a missing bucket as "Bucket not found".

    Args:
        error: Exception raised by the Supabase client (possibly wrapped)

    Returns:
        Setup message, or None if the error is not a setup problem
    """
    cause = error.__cause__ or error
    text = (getattr(cause, "message", None) or str(cause) or "").lower()
    code = str(getattr(cause, "code", "") or "").upper()

    if code in ("42P01", "PGRST205") or "does not exist" in text or "could not find the table" in text:
        table = "unknown"
        for candidate in (
            "clothing_items",
            "review_images",
            "categories",
            "newsletter_subscriptions",
            "site_config",
            "wishlists",
        ):
            if candidate in text:
                table = candidate
                break
        return SETUP_TABLE_HINT.format(table=table)

    if "bucket not found" in text:
        return SETUP_BUCKET_HINT

    return None
