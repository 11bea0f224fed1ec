"""Admin dashboard helpers."""

from .dashboard import (
    DashboardStats,
    export_subscribers,
    format_bytes,
    load_stats,
    usage_level,
    usage_percentage,
)

__all__ = [
    "DashboardStats",
    "export_subscribers",
    "format_bytes",
    "load_stats",
    "usage_level",
    "usage_percentage",
]
