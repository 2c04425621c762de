from __future__ import annotations

import json
import math
from functools import lru_cache
from importlib import resources

from .models import LocationConfig

DEFAULT_CITY = "Riyadh"


@lru_cache(maxsize=1)
def get_locations() -> tuple[LocationConfig, ...]:
    path = resources.files("ramadan_cli.data").joinpath("locations.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    return tuple(LocationConfig.from_dict(item) for item in data)


@lru_cache(maxsize=1)
def get_default_location() -> LocationConfig:
    return find_location(DEFAULT_CITY) or get_locations()[0]


def find_location(name: str) -> LocationConfig | None:
    wanted = name.strip().casefold()
    for loc in get_locations():
        if loc.name.casefold() == wanted:
            return loc
    return None


def locations_by_country() -> dict[str, list[LocationConfig]]:
    grouped: dict[str, list[LocationConfig]] = {}
    for loc in get_locations():
        grouped.setdefault(loc.country or "Other", []).append(loc)
    return grouped


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    radius_km = 6371
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius_km * c


def find_nearest_location(lat: float, lon: float) -> LocationConfig:
    nearest = get_default_location()
    min_distance = float("inf")

    for loc in get_locations():
        distance = haversine_distance(lat, lon, loc.latitude, loc.longitude)
        if distance < min_distance:
            min_distance = distance
            nearest = loc

    return nearest
