from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Callable

from .fast_boundary import EventSwitcher
from .models import (
    DISPLAY_NAMES,
    CountdownParts,
    CountdownTarget,
    FastBoundaryState,
    LocationConfig,
    ResolvedSchedule,
)
from .resolver import ScheduleResolver
from .ticker import Clock, CountdownTicker, cancel_task, format_countdown

logger = logging.getLogger(__name__)

Selection = tuple[date, LocationConfig]

RETRY_DEGRADED_SEC = 60.0


class DashboardView:
    """One view's selection, its in-flight fetch, its schedule and its ticker.

    Selecting a new location or day stops the ticker and cancels the
    outstanding fetch before a new one starts. A fetch result is applied
    only if its (day, location) is still the current selection.

    While running on the fallback schedule the view asks the resolver again
    every ``retry_interval`` seconds and whenever the countdown target
    switches, and swaps in the live schedule once one arrives.
    """

    def __init__(
        self,
        resolver: ScheduleResolver,
        clock: Clock = datetime.now,
        on_update: Callable[["DashboardView"], None] | None = None,
        interval: float = 1.0,
        retry_interval: float = RETRY_DEGRADED_SEC,
    ) -> None:
        self.resolver = resolver
        self.clock = clock
        self.on_update = on_update
        self.interval = interval
        self.retry_interval = retry_interval
        self.selection: Selection | None = None
        self.resolved: ResolvedSchedule | None = None
        self.switcher: EventSwitcher | None = None
        self._ticker: CountdownTicker | None = None
        self._fetch: asyncio.Task[None] | None = None
        self._rollover: asyncio.Task[None] | None = None
        self._last_attempt: datetime | None = None
        self._last_target: str | None = None
        self._ready = asyncio.Event()

    async def __aenter__(self) -> "DashboardView":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def select(self, location: LocationConfig, day: date | None = None) -> None:
        key = (day or self.clock().date(), location)
        logger.debug("Selecting %s for %s", location.name, key[0].isoformat())

        previous, self.selection = self.selection, key
        self._ready.clear()
        await self._stop_ticker()
        if previous is None or previous[1] != location:
            self.resolved = None
            self.switcher = None
        await self._cancel_fetch()
        self._fetch = asyncio.get_running_loop().create_task(self._load(key))

    async def wait_ready(self) -> None:
        await self._ready.wait()

    async def close(self) -> None:
        self.selection = None
        rollover, self._rollover = self._rollover, None
        if rollover is not None and rollover is not asyncio.current_task():
            await cancel_task(rollover)
        await self._cancel_fetch()
        await self._stop_ticker()

    async def _load(self, key: Selection) -> None:
        result = await self.resolver.resolve_latest(*key)
        if result is None or self.selection != key:
            logger.debug("Ignoring schedule for %s; selection changed", key[1].name)
            return
        self._apply(result)

    async def _retry(self, key: Selection) -> None:
        logger.debug("Retrying live schedule for %s", key[1].name)
        result = await self.resolver.resolve_latest(*key)
        if result is None or result.degraded or self.selection != key:
            return
        logger.info("Live schedule for %s is available again", key[1].name)
        await self._stop_ticker()
        if self.selection == key:
            self._apply(result)

    def _apply(self, result: ResolvedSchedule) -> None:
        self._last_attempt = self.clock()
        self._last_target = None
        self.resolved = result
        self.switcher = EventSwitcher(result.schedule)
        self._ticker = CountdownTicker(result.schedule, self.clock, self._on_tick, self.interval)
        self._ticker.start()
        self._ready.set()

    def _on_tick(self, target: CountdownTarget, now: datetime) -> None:
        if self.switcher is not None:
            self.switcher.advance_to(now)

        if self.selection is not None and now.date() != self.selection[0]:
            if self._rollover is None or self._rollover.done():
                logger.info("Day changed to %s, refreshing schedule", now.date().isoformat())
                location = self.selection[1]
                self._rollover = asyncio.get_running_loop().create_task(
                    self.select(location, now.date())
                )

        if self.selection is not None and self._should_retry(target, now):
            self._last_attempt = now
            self._fetch = asyncio.get_running_loop().create_task(self._retry(self.selection))
        self._last_target = target.name

        if self.on_update:
            self.on_update(self)

    def _should_retry(self, target: CountdownTarget, now: datetime) -> bool:
        if self.resolved is None or not self.resolved.degraded:
            return False
        if self.selection is None or now.date() != self.selection[0]:
            return False
        if self._fetch is not None and not self._fetch.done():
            return False
        if self._last_target is not None and target.name != self._last_target:
            return True
        if self._last_attempt is None:
            return True
        return (now - self._last_attempt).total_seconds() >= self.retry_interval

    async def _cancel_fetch(self) -> None:
        task, self._fetch = self._fetch, None
        if task is None or task.done():
            return
        await cancel_task(task)

    async def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            await ticker.stop()

    def get_schedule(self) -> list[dict[str, str]]:
        if self.resolved is None:
            return []
        return [
            {
                "name": event.name,
                "display_name": DISPLAY_NAMES[event.name],
                "time": event.clock,
            }
            for event in self.resolved.schedule
        ]

    def get_next_event(self) -> CountdownTarget | None:
        return self._ticker.target if self._ticker else None

    def get_formatted_countdown(self) -> CountdownParts | None:
        target = self.get_next_event()
        return format_countdown(target.seconds_remaining) if target else None

    def get_fast_boundary_state(self) -> FastBoundaryState | None:
        return self.switcher.state if self.switcher else None

    def is_degraded(self) -> bool:
        return bool(self.resolved and self.resolved.degraded)
