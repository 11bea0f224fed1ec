import asyncio
from datetime import date

import pytest

from config.settings import CatalogConfig
from closet.admin.dashboard import (
    DashboardStats,
    export_filename,
    export_subscribers,
    format_bytes,
    iso_timestamp,
    load_stats,
    usage_level,
    usage_percentage,
)
from closet.errors import FetchFailure

from conftest import FakeService, make_subscriber

MB = 1024 * 1024


@pytest.mark.parametrize(
    "num_bytes, expected",
    [
        (0, "0 Bytes"),
        (500, "500 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1234567, "1.18 MB"),
        (5 * 1024**3, "5 GB"),
        (3 * 1024**4, "3 TB"),
    ],
)
def test_format_bytes(num_bytes, expected):
    assert format_bytes(num_bytes) == expected


def test_usage_percentage_is_capped():
    assert usage_percentage(500 * MB, 1000 * MB) == 50
    assert usage_percentage(2000 * MB, 1000 * MB) == 100


@pytest.mark.parametrize(
    "percentage, level",
    [(10, "normal"), (75, "normal"), (75.1, "warning"), (90, "warning"), (90.5, "critical")],
)
def test_usage_level(percentage, level):
    assert usage_level(percentage) == level


def test_stats_to_dict():
    stats = DashboardStats(clothing_items=3, review_images=2, storage_used_bytes=800 * MB, subscribers=7)
    data = stats.to_dict()

    assert data["total_images"] == 5
    assert data["storage_limit"] == "1000 MB"
    assert data["usage_percentage"] == 80
    assert data["usage_level"] == "warning"


def test_load_stats(notifier):
    service = FakeService()
    service.counts = {"items": 12, "reviews": 4, "subscribers": 9, "storage": 950 * MB}

    stats = asyncio.run(load_stats(service, notifier))

    assert stats.clothing_items == 12
    assert stats.total_images == 16
    assert stats.subscribers == 9
    assert stats.usage_level == "critical"
    assert notifier.messages == []


def test_load_stats_uses_given_thresholds(notifier):
    service = FakeService()
    service.counts["storage"] = 500 * MB
    catalog = CatalogConfig(warning_percent=40.0, critical_percent=60.0)

    stats = asyncio.run(load_stats(service, notifier, catalog))

    assert stats.usage_level == "warning"
    assert stats.to_dict()["usage_level"] == "warning"
    assert DashboardStats(storage_used_bytes=500 * MB).usage_level == "normal"


def test_load_stats_failure(notifier):
    service = FakeService()
    service.fail_with = FetchFailure("Could not count clothing_items", source="clothing_items")

    assert asyncio.run(load_stats(service, notifier)) is None
    assert notifier.texts("error") == ["Failed to load dashboard stats."]


def test_iso_timestamp():
    assert iso_timestamp("2024-05-01T10:00:00.123456+00:00") == "2024-05-01T10:00:00.123Z"
    assert iso_timestamp("2024-05-01T12:00:00+02:00") == "2024-05-01T10:00:00.000Z"
    assert iso_timestamp("not a date") == "not a date"


def test_export_subscribers(notifier):
    subs = [
        make_subscriber(1, "a@example.com", "2024-05-01T10:00:00+00:00"),
        make_subscriber(2, "b@example.com", "2024-05-02T08:30:00.5+00:00"),
    ]

    filename, content = export_subscribers(subs, notifier, today=date(2024, 6, 1))

    assert filename == "uys-closet-subscribers-2024-06-01.csv"
    assert content.splitlines() == [
        "Email,SubscribedAt",
        '"a@example.com","2024-05-01T10:00:00.000Z"',
        '"b@example.com","2024-05-02T08:30:00.500Z"',
    ]
    assert notifier.texts("success") == ["Subscriber list exported."]


def test_export_with_no_subscribers(notifier):
    assert export_subscribers([], notifier) is None
    assert notifier.texts("error") == ["No subscribers to export."]


def test_export_filename_defaults_to_today():
    assert export_filename().startswith(f"uys-closet-subscribers-{date.today().isoformat()}")
