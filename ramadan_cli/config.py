from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, cast

from .errors import ScheduleError
from .locations import get_default_location
from .models import LocationConfig
from .resolver import DEFAULT_FALLBACK_TIMES, build_schedule

CONFIG_DIR = Path.home() / ".config" / "ramadan-cli"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

TimeFormat = Literal["12h", "24h"]

logger = logging.getLogger(__name__)


@dataclass
class Config:
    location: LocationConfig
    fallback_times: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FALLBACK_TIMES))
    time_format: TimeFormat = "24h"
    log_level: str = "WARNING"

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location.to_dict(),
            "fallback_times": dict(self.fallback_times),
            "time_format": self.time_format,
            "log_level": self.log_level,
        }


def _sanitize_time_format(value: Any) -> TimeFormat:
    if value in ("12h", "24h"):
        return cast(TimeFormat, value)
    return "24h"


def _sanitize_log_level(value: Any) -> str:
    if isinstance(value, str) and value.upper() in LOG_LEVELS:
        return value.upper()
    return "WARNING"


def _sanitize_fallback_times(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return dict(DEFAULT_FALLBACK_TIMES)
    try:
        return build_schedule(value).to_clock_dict()
    except (ScheduleError, TypeError):
        logger.warning("Ignoring invalid fallback_times in %s", CONFIG_PATH)
        return dict(DEFAULT_FALLBACK_TIMES)


def default_config() -> Config:
    return Config(location=get_default_location())


def load_config() -> Config:
    if not CONFIG_PATH.exists():
        config = default_config()
        save_config(config)
        return config

    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        config = default_config()
        save_config(config)
        return config

    if not isinstance(data, dict):
        data = {}

    location_raw = data.get("location")
    if isinstance(location_raw, dict):
        try:
            location = LocationConfig.from_dict(location_raw)
        except (KeyError, TypeError, ValueError):
            location = get_default_location()
    else:
        location = get_default_location()

    return Config(
        location=location,
        fallback_times=_sanitize_fallback_times(data.get("fallback_times")),
        time_format=_sanitize_time_format(data.get("time_format")),
        log_level=_sanitize_log_level(data.get("log_level")),
    )


def save_config(config: Config) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(
        json.dumps(config.to_dict(), ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
