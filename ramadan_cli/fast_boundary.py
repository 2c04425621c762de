"""Iftar/Suhoor projection of a day schedule.

Only Maghrib and Fajr matter here. From Fajr until Maghrib the fast is
running and we count down to Iftar; from Maghrib through midnight until
the next Fajr we count down to the end of Suhoor.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .finder import clock_reading, seconds_until
from .models import AwaitingIftar, AwaitingSuhoor, DaySchedule, FastBoundaryState

logger = logging.getLogger(__name__)


def fast_boundary_state(schedule: DaySchedule, now_minute: int, now_second: int = 0) -> FastBoundaryState:
    fajr = schedule.get("Fajr").minute_of_day
    maghrib = schedule.get("Maghrib").minute_of_day

    if fajr <= now_minute < maghrib:
        return AwaitingIftar(seconds_until(maghrib, now_minute, now_second))
    return AwaitingSuhoor(seconds_until(fajr, now_minute, now_second))


class EventSwitcher:
    def __init__(self, schedule: DaySchedule) -> None:
        self.schedule = schedule
        self.state: FastBoundaryState | None = None
        self.switched = False

    def advance(self, now_minute: int, now_second: int = 0) -> FastBoundaryState:
        state = fast_boundary_state(self.schedule, now_minute, now_second)
        self.switched = self.state is not None and state.phase != self.state.phase
        if self.switched:
            logger.info("Fast boundary switched to %s", state.phase)
        self.state = state
        return state

    def advance_to(self, moment: datetime) -> FastBoundaryState:
        return self.advance(*clock_reading(moment))
