from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Literal, Union

PrayerName = Literal["Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha"]
FastPhase = Literal["iftar", "suhoor"]

PRAYER_NAMES: tuple[PrayerName, ...] = (
    "Fajr",
    "Sunrise",
    "Dhuhr",
    "Asr",
    "Maghrib",
    "Isha",
)

DISPLAY_NAMES: dict[PrayerName, str] = {
    "Fajr": "الفجر",
    "Sunrise": "الشروق",
    "Dhuhr": "الظهر",
    "Asr": "العصر",
    "Maghrib": "المغرب",
    "Isha": "العشاء",
}

MINUTES_PER_DAY = 24 * 60
SECONDS_PER_DAY = MINUTES_PER_DAY * 60


@dataclass(frozen=True)
class LocationConfig:
    name: str
    latitude: float
    longitude: float
    calculation_method: int
    country: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocationConfig":
        return cls(
            name=str(data["name"]),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            calculation_method=int(data["calculation_method"]),
            country=data.get("country"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "calculation_method": self.calculation_method,
        }
        if self.country:
            payload["country"] = self.country
        return payload


@dataclass(frozen=True)
class PrayerEvent:
    name: PrayerName
    minute_of_day: int

    @property
    def clock(self) -> str:
        hours, minutes = divmod(self.minute_of_day, 60)
        return f"{hours:02}:{minutes:02}"


@dataclass(frozen=True)
class DaySchedule:
    """Six canonical events of one day, strictly ascending by minute.

    Instances are only built by the resolver, which validates the ordering
    before construction; everything downstream treats them as read-only.
    """

    events: tuple[PrayerEvent, ...]

    def __iter__(self):
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def get(self, name: PrayerName) -> PrayerEvent:
        for event in self.events:
            if event.name == name:
                return event
        raise KeyError(name)

    @property
    def first(self) -> PrayerEvent:
        return self.events[0]

    def to_clock_dict(self) -> dict[str, str]:
        return {event.name: event.clock for event in self.events}


@dataclass(frozen=True)
class ResolvedSchedule:
    schedule: DaySchedule
    day: date
    location: LocationConfig
    degraded: bool = False
    error: str | None = None


@dataclass(frozen=True)
class CountdownTarget:
    name: PrayerName
    seconds_remaining: int


@dataclass(frozen=True)
class CountdownParts:
    hours: str
    minutes: str
    seconds: str

    def __str__(self) -> str:
        return f"{self.hours}:{self.minutes}:{self.seconds}"


@dataclass(frozen=True)
class AwaitingIftar:
    seconds_remaining: int
    phase: FastPhase = "iftar"


@dataclass(frozen=True)
class AwaitingSuhoor:
    seconds_remaining: int
    phase: FastPhase = "suhoor"


FastBoundaryState = Union[AwaitingIftar, AwaitingSuhoor]
