from __future__ import annotations

import asyncio
from datetime import date

import pytest

from ramadan_cli.errors import MalformedResponse, NetworkFailure, ParseFailure
from ramadan_cli.models import PRAYER_NAMES, LocationConfig
from ramadan_cli.resolver import (
    DEFAULT_FALLBACK_TIMES,
    ScheduleResolver,
    build_schedule,
    fallback_schedule,
    parse_clock,
)

DAY = date(2025, 3, 10)
RIYADH = LocationConfig("Riyadh", 24.7136, 46.6753, 4, "Saudi Arabia")
CAIRO = LocationConfig("Cairo", 30.0444, 31.2357, 5, "Egypt")

RIYADH_TIMES = {
    "Fajr": "04:58 (+03)",
    "Sunrise": "06:16 (+03)",
    "Dhuhr": "12:12 (+03)",
    "Asr": "15:35 (+03)",
    "Maghrib": "18:07 (+03)",
    "Isha": "19:37 (+03)",
}
CAIRO_TIMES = {
    "Fajr": "04:33 (EET)",
    "Sunrise": "06:00 (EET)",
    "Dhuhr": "12:03 (EET)",
    "Asr": "15:26 (EET)",
    "Maghrib": "18:05 (EET)",
    "Isha": "19:23 (EET)",
}


def _source_returning(times: dict[str, str]):
    async def _source(day, location):
        return dict(times)

    return _source


def _source_raising(exc: Exception):
    async def _source(day, location):
        raise exc

    return _source


def _resolve(resolver: ScheduleResolver, location: LocationConfig = RIYADH):
    return asyncio.run(resolver.resolve(DAY, location))


@pytest.mark.parametrize(
    ("raw", "minutes"),
    [
        ("04:30", 270),
        ("04:30 (AST)", 270),
        ("5:07 (+03)", 307),
        ("23:59", 1439),
        ("00:00", 0),
    ],
)
def test_parse_clock_strips_zone_suffix(raw: str, minutes: int) -> None:
    assert parse_clock(raw) == minutes


@pytest.mark.parametrize("raw", ["", "noon", "24:00", "12:60", "12-30", "(AST)"])
def test_parse_clock_rejects_garbage(raw: str) -> None:
    with pytest.raises(ParseFailure):
        parse_clock(raw)


def test_build_schedule_orders_canonical_events() -> None:
    schedule = build_schedule(RIYADH_TIMES)

    assert [event.name for event in schedule] == list(PRAYER_NAMES)
    assert schedule.get("Maghrib").clock == "18:07"


def test_build_schedule_rejects_out_of_order_times() -> None:
    times = dict(RIYADH_TIMES, Asr="11:00")

    with pytest.raises(MalformedResponse):
        build_schedule(times)


def test_build_schedule_rejects_non_mapping_and_non_string_values() -> None:
    with pytest.raises(MalformedResponse):
        build_schedule(None)
    with pytest.raises(ParseFailure):
        build_schedule(dict(RIYADH_TIMES, Fajr=458))


def test_build_schedule_rejects_missing_event() -> None:
    times = dict(RIYADH_TIMES)
    del times["Isha"]

    with pytest.raises(MalformedResponse):
        build_schedule(times)


def test_successful_resolution_is_not_degraded() -> None:
    resolved = _resolve(ScheduleResolver(source=_source_returning(RIYADH_TIMES), use_cache=False))

    assert not resolved.degraded
    assert resolved.error is None
    assert resolved.schedule.get("Fajr").clock == "04:58"


def test_network_failure_yields_degraded_fallback() -> None:
    resolver = ScheduleResolver(source=_source_raising(NetworkFailure("offline")), use_cache=False)

    resolved = _resolve(resolver)

    assert resolved.degraded
    assert resolved.error == "network-failure"
    assert len(resolved.schedule) == 6
    assert resolved.schedule.to_clock_dict() == DEFAULT_FALLBACK_TIMES


def test_malformed_and_unparsable_payloads_fall_back() -> None:
    bad_clock = dict(RIYADH_TIMES, Dhuhr="midday")

    malformed = _resolve(
        ScheduleResolver(source=_source_raising(MalformedResponse("code 400")), use_cache=False)
    )
    unparsable = _resolve(ScheduleResolver(source=_source_returning(bad_clock), use_cache=False))

    assert malformed.degraded and malformed.error == "malformed-response"
    assert unparsable.degraded and unparsable.error == "parse-failure"


def test_out_of_order_payload_is_reported_as_malformed() -> None:
    shuffled = dict(RIYADH_TIMES, Maghrib="15:00")

    resolved = _resolve(ScheduleResolver(source=_source_returning(shuffled), use_cache=False))

    assert resolved.degraded
    assert resolved.error == "malformed-response"


def test_unexpected_source_exception_still_falls_back() -> None:
    resolver = ScheduleResolver(source=_source_raising(OSError("socket gone")), use_cache=False)

    resolved = _resolve(resolver)

    assert resolved.degraded
    assert resolved.error == "network-failure"
    assert resolved.schedule.to_clock_dict() == DEFAULT_FALLBACK_TIMES


def test_configured_fallback_times_are_used() -> None:
    custom = dict(DEFAULT_FALLBACK_TIMES, Maghrib="18:30")
    resolver = ScheduleResolver(
        source=_source_raising(NetworkFailure("offline")),
        fallback_times=custom,
        use_cache=False,
    )

    assert _resolve(resolver).schedule.get("Maghrib").clock == "18:30"


def test_invalid_configured_fallback_uses_defaults() -> None:
    schedule = fallback_schedule({"Fajr": "25:00"})

    assert schedule.to_clock_dict() == DEFAULT_FALLBACK_TIMES


def test_resolving_twice_is_idempotent() -> None:
    resolver = ScheduleResolver(source=_source_returning(RIYADH_TIMES), use_cache=False)

    assert _resolve(resolver) == _resolve(resolver)


def test_last_requested_location_wins() -> None:
    async def _scenario():
        release_riyadh = asyncio.Event()

        async def _source(day, location):
            if location == RIYADH:
                await release_riyadh.wait()
                return dict(RIYADH_TIMES)
            return dict(CAIRO_TIMES)

        resolver = ScheduleResolver(source=_source, use_cache=False)
        riyadh_task = asyncio.create_task(resolver.resolve_latest(DAY, RIYADH))
        await asyncio.sleep(0)

        cairo = await resolver.resolve_latest(DAY, CAIRO)
        release_riyadh.set()
        riyadh = await riyadh_task
        return riyadh, cairo

    riyadh, cairo = asyncio.run(_scenario())

    assert riyadh is None
    assert cairo is not None
    assert cairo.location == CAIRO
    assert cairo.schedule.get("Fajr").clock == "04:33"
