from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from .finder import find_next_at
from .models import CountdownParts, CountdownTarget, DaySchedule

Clock = Callable[[], datetime]
TickCallback = Callable[[CountdownTarget, datetime], None]

logger = logging.getLogger(__name__)


def format_countdown(seconds: int) -> CountdownParts:
    total = max(0, seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    return CountdownParts(f"{hours:02}", f"{minutes:02}", f"{secs:02}")


def format_countdown_text(seconds: int) -> str:
    return str(format_countdown(seconds))


async def cancel_task(task: asyncio.Task) -> None:
    """Cancel ``task`` and wait for it to finish.

    Cancelling the caller while it waits still raises ``CancelledError`` in
    the caller; only the cancellation of ``task`` itself is absorbed.
    """
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled() and task.exception() is not None:
        logger.error("Task %s failed while stopping", task.get_name(), exc_info=task.exception())


class CountdownTicker:
    """Recompute the countdown target once per second from the schedule.

    Every tick reads the clock and runs the finder from scratch; nothing is
    decremented between ticks, so a late wake-up never accumulates drift.
    """

    def __init__(
        self,
        schedule: DaySchedule,
        clock: Clock = datetime.now,
        on_tick: TickCallback | None = None,
        interval: float = 1.0,
    ) -> None:
        self.schedule = schedule
        self.clock = clock
        self.on_tick = on_tick
        self.interval = interval
        self.target: CountdownTarget | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> CountdownTarget:
        now = self.clock()
        target = find_next_at(self.schedule, now)
        if self.target is not None and target.name != self.target.name:
            logger.info("Countdown target switched from %s to %s", self.target.name, target.name)
        self.target = target
        if self.on_tick:
            self.on_tick(target, now)
        return target

    def _delay(self) -> float:
        if self.interval != 1.0:
            return self.interval
        # Wake just after the next wall-clock second.
        return max(0.05, 1.0 - self.clock().microsecond / 1_000_000)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._delay())
            try:
                self.tick()
            except Exception:  # noqa: BLE001
                logger.exception("Countdown tick failed")

    def start(self) -> None:
        if self.running:
            return
        self.tick()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        await cancel_task(task)
