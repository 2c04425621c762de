"""Turn raw provider clock strings into a validated :class:`DaySchedule`.

This is the only place raw ``HH:MM`` strings are parsed. Every failure,
whether from the network, the payload shape or the clock strings, ends in
the fallback schedule with the degraded flag set, so callers always get
something to count down against.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Mapping

from . import cache
from .errors import MalformedResponse, NetworkFailure, ParseFailure, ScheduleError
from .models import (
    PRAYER_NAMES,
    DaySchedule,
    LocationConfig,
    PrayerEvent,
    ResolvedSchedule,
)
from .schedule_source import ScheduleSource, fetch_timings

DEFAULT_FALLBACK_TIMES: dict[str, str] = {
    "Fajr": "04:45",
    "Sunrise": "06:05",
    "Dhuhr": "12:00",
    "Asr": "15:20",
    "Maghrib": "18:00",
    "Isha": "19:30",
}

_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")
_ZONE_SUFFIX_RE = re.compile(r"\s*\([^)]*\)\s*$")

logger = logging.getLogger(__name__)


def parse_clock(value: str) -> int:
    """Parse ``"HH:MM"`` (optionally followed by a zone like ``" (AST)"``) to minutes."""
    if not isinstance(value, str):
        raise ParseFailure(f"Clock value is not a string: {value!r}")
    cleaned = _ZONE_SUFFIX_RE.sub("", value).strip()
    if cleaned:
        cleaned = cleaned.split()[0]

    match = _CLOCK_RE.fullmatch(cleaned)
    if not match:
        raise ParseFailure(f"Invalid clock value: {value!r}")

    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ParseFailure(f"Clock value out of range: {value!r}")
    return hours * 60 + minutes


def build_schedule(raw: Mapping[str, str]) -> DaySchedule:
    if not isinstance(raw, Mapping):
        raise MalformedResponse(f"Expected a mapping of timings, got {type(raw).__name__}")
    missing = [name for name in PRAYER_NAMES if name not in raw]
    if missing:
        raise MalformedResponse(f"Missing events: {', '.join(missing)}")

    events = tuple(PrayerEvent(name, parse_clock(raw[name])) for name in PRAYER_NAMES)

    for earlier, later in zip(events, events[1:]):
        if later.minute_of_day <= earlier.minute_of_day:
            raise MalformedResponse(
                f"{later.name} ({later.clock}) is not after {earlier.name} ({earlier.clock})"
            )

    return DaySchedule(events)


def fallback_schedule(times: Mapping[str, str] | None = None) -> DaySchedule:
    if times:
        try:
            return build_schedule(times)
        except ScheduleError as exc:
            logger.warning("Configured fallback times are invalid (%s); using defaults", exc)
    return build_schedule(DEFAULT_FALLBACK_TIMES)


class ScheduleResolver:
    def __init__(
        self,
        source: ScheduleSource = fetch_timings,
        fallback_times: Mapping[str, str] | None = None,
        use_cache: bool = True,
    ) -> None:
        self.source = source
        self.fallback = fallback_schedule(fallback_times)
        self.use_cache = use_cache
        self._latest: tuple[date, LocationConfig] | None = None

    async def resolve(self, day: date, location: LocationConfig) -> ResolvedSchedule:
        """Resolve one (day, location) pair; falls back instead of raising."""
        if self.use_cache:
            cached = cache.get_cached_timings(location, day)
            if cached:
                try:
                    return ResolvedSchedule(build_schedule(cached), day, location)
                except ScheduleError:
                    logger.debug("Discarding invalid cache entry for %s", location.name)

        try:
            schedule = await self._fetch_schedule(day, location)
        except ScheduleError as exc:
            logger.warning(
                "Using fallback schedule for %s on %s: %s (%s)",
                location.name,
                day.isoformat(),
                exc,
                exc.kind,
            )
            return ResolvedSchedule(self.fallback, day, location, degraded=True, error=exc.kind)

        if self.use_cache:
            cache.set_cached_timings(location, day, schedule.to_clock_dict())
        return ResolvedSchedule(schedule, day, location)

    async def _fetch_schedule(self, day: date, location: LocationConfig) -> DaySchedule:
        try:
            raw = await self.source(day, location)
        except ScheduleError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.debug("Schedule source raised unexpectedly", exc_info=True)
            raise NetworkFailure(f"Schedule source failed: {exc!r}") from exc
        return build_schedule(raw)

    async def resolve_latest(self, day: date, location: LocationConfig) -> ResolvedSchedule | None:
        """Like :meth:`resolve`, but returns ``None`` if a newer request was made meanwhile."""
        key = (day, location)
        self._latest = key
        result = await self.resolve(day, location)
        if self._latest != key:
            logger.debug("Discarding stale schedule for %s on %s", location.name, day.isoformat())
            return None
        return result
