from __future__ import annotations

from datetime import datetime

from .models import SECONDS_PER_DAY, CountdownTarget, DaySchedule, PrayerEvent


def seconds_until(event_minute: int, now_minute: int, now_second: int = 0) -> int:
    """Seconds from ``now`` to the next occurrence of ``event_minute``.

    An event whose minute is at or before ``now_minute`` is taken to be
    tomorrow's: seconds left today plus seconds from midnight to the event.
    """
    delta = event_minute * 60 - (now_minute * 60 + now_second)
    if event_minute <= now_minute:
        delta += SECONDS_PER_DAY
    return max(0, delta)


def next_event(schedule: DaySchedule, now_minute: int) -> PrayerEvent:
    for event in schedule:
        if event.minute_of_day > now_minute:
            return event
    return schedule.first


def find_next(schedule: DaySchedule, now_minute: int, now_second: int = 0) -> CountdownTarget:
    event = next_event(schedule, now_minute)
    return CountdownTarget(
        name=event.name,
        seconds_remaining=seconds_until(event.minute_of_day, now_minute, now_second),
    )


def clock_reading(moment: datetime) -> tuple[int, int]:
    return moment.hour * 60 + moment.minute, moment.second


def find_next_at(schedule: DaySchedule, moment: datetime) -> CountdownTarget:
    now_minute, now_second = clock_reading(moment)
    return find_next(schedule, now_minute, now_second)
