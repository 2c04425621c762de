from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .models import PRAYER_NAMES, LocationConfig

CACHE_DIR = Path.home() / ".cache" / "ramadan-cli"
CACHE_PATH = CACHE_DIR / "schedule_cache.json"

logger = logging.getLogger(__name__)


@dataclass
class CachedTimings:
    times: dict[str, str]
    date: str
    fetched_at: str


def _cache_key(location: LocationConfig) -> str:
    return (
        f"{location.name}-{location.latitude:.5f}-{location.longitude:.5f}"
        f"-{location.calculation_method}"
    )


def _safe_read_cache() -> dict[str, Any]:
    if not CACHE_PATH.exists():
        return {}

    try:
        raw = CACHE_PATH.read_text(encoding="utf-8")
        data = json.loads(raw)
        return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        logger.debug("Ignoring unreadable cache at %s", CACHE_PATH)
        return {}


def _safe_write_cache(payload: dict[str, Any]) -> None:
    try:
        CACHE_DIR.mkdir(parents=True, exist_ok=True)
        CACHE_PATH.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        logger.warning("Could not write schedule cache: %s", exc)


def _parse_cached_entry(entry: Any) -> CachedTimings | None:
    if not isinstance(entry, dict):
        return None

    times = entry.get("times")
    if not isinstance(times, dict) or any(
        not isinstance(times.get(name), str) for name in PRAYER_NAMES
    ):
        return None

    try:
        return CachedTimings(
            times={name: times[name] for name in PRAYER_NAMES},
            date=str(entry["date"]),
            fetched_at=str(entry["fetched_at"]),
        )
    except KeyError:
        return None


def get_cached_timings(location: LocationConfig, day: date) -> dict[str, str] | None:
    """Return the raw timings stored for ``location`` if they belong to ``day``."""
    data = _safe_read_cache()
    entry = _parse_cached_entry(data.get(_cache_key(location)))
    if entry and entry.date == day.isoformat():
        return entry.times
    return None


def set_cached_timings(location: LocationConfig, day: date, times: dict[str, str]) -> None:
    data = _safe_read_cache()

    now = datetime.now().astimezone()
    data[_cache_key(location)] = {
        "times": dict(times),
        "date": day.isoformat(),
        "fetched_at": now.isoformat(),
    }

    _safe_write_cache(data)
