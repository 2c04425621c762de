from __future__ import annotations

import asyncio
from datetime import date

from ramadan_cli import cache
from ramadan_cli.errors import NetworkFailure
from ramadan_cli.models import LocationConfig
from ramadan_cli.resolver import ScheduleResolver

RIYADH = LocationConfig(
    name="Riyadh",
    latitude=24.7136,
    longitude=46.6753,
    calculation_method=4,
    country="Saudi Arabia",
)
TIMES = {
    "Fajr": "04:58",
    "Sunrise": "06:16",
    "Dhuhr": "12:12",
    "Asr": "15:35",
    "Maghrib": "18:07",
    "Isha": "19:37",
}


def test_cache_roundtrip() -> None:
    cache.set_cached_timings(RIYADH, date(2025, 3, 10), TIMES)

    fresh = cache.get_cached_timings(RIYADH, date(2025, 3, 10))
    assert fresh is not None
    assert fresh["Isha"] == "19:37"


def test_cache_entry_from_another_day_is_ignored() -> None:
    cache.set_cached_timings(RIYADH, date(2025, 3, 9), TIMES)

    assert cache.get_cached_timings(RIYADH, date(2025, 3, 10)) is None


def test_unreadable_cache_file_is_treated_as_empty() -> None:
    cache.CACHE_DIR.mkdir(parents=True)
    cache.CACHE_PATH.write_text("{not json", encoding="utf-8")

    assert cache.get_cached_timings(RIYADH, date(2025, 3, 10)) is None


def test_resolver_prefers_same_day_cache_over_network() -> None:
    cache.set_cached_timings(RIYADH, date(2025, 3, 10), TIMES)

    async def _no_network(day, location):
        raise AssertionError("network should not be called")

    resolver = ScheduleResolver(source=_no_network)
    resolved = asyncio.run(resolver.resolve(date(2025, 3, 10), RIYADH))

    assert not resolved.degraded
    assert resolved.schedule.get("Maghrib").clock == "18:07"


def test_resolver_stores_successful_fetch_but_not_fallback() -> None:
    async def _source(day, location):
        return {name: f"{value} (AST)" for name, value in TIMES.items()}

    async def _down(day, location):
        raise NetworkFailure("offline")

    asyncio.run(ScheduleResolver(source=_source).resolve(date(2025, 3, 10), RIYADH))
    assert cache.get_cached_timings(RIYADH, date(2025, 3, 10)) == TIMES

    asyncio.run(ScheduleResolver(source=_down).resolve(date(2025, 3, 11), RIYADH))
    assert cache.get_cached_timings(RIYADH, date(2025, 3, 11)) is None
