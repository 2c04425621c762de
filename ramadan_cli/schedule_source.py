from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Awaitable, Callable

import httpx

from .errors import MalformedResponse, NetworkFailure
from .models import PRAYER_NAMES, LocationConfig

ALADHAN_BASE_URL = "https://api.aladhan.com/v1"
MAX_RETRIES = 2
RETRY_BASE_DELAY_SEC = 0.8
REQUEST_TIMEOUT_SEC = 20.0
USER_AGENT = "ramadan-cli"

ScheduleSource = Callable[[date, LocationConfig], Awaitable[dict[str, str]]]

logger = logging.getLogger(__name__)


def aladhan_timings_url(day: date) -> str:
    return f"{ALADHAN_BASE_URL}/timings/{day.strftime('%d-%m-%Y')}"


def aladhan_params(location: LocationConfig) -> dict[str, str]:
    return {
        "latitude": str(location.latitude),
        "longitude": str(location.longitude),
        "method": str(location.calculation_method),
    }


async def _get_with_retries(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, str],
) -> httpx.Response:
    last_error: Exception | None = None

    for attempt in range(MAX_RETRIES + 1):
        try:
            response = await client.get(url, params=params)

            if response.status_code >= 500 and attempt < MAX_RETRIES:
                logger.debug("AlAdhan returned %s, retrying", response.status_code)
                await asyncio.sleep(RETRY_BASE_DELAY_SEC * (attempt + 1))
                continue

            return response
        except httpx.HTTPError as exc:
            last_error = exc
            if attempt < MAX_RETRIES:
                logger.debug("AlAdhan request failed (%s), retrying", exc)
                await asyncio.sleep(RETRY_BASE_DELAY_SEC * (attempt + 1))
                continue
            break

    raise NetworkFailure("Failed to fetch prayer times") from last_error


def extract_timings(payload: Any) -> dict[str, str]:
    """Pick the six raw clock strings out of an AlAdhan ``timings`` body."""
    if not isinstance(payload, dict) or payload.get("code") != 200:
        status = payload.get("status") if isinstance(payload, dict) else None
        raise MalformedResponse(f"AlAdhan reported failure: {status}")

    data = payload.get("data")
    timings = data.get("timings") if isinstance(data, dict) else None
    if not isinstance(timings, dict):
        raise MalformedResponse("Unexpected response format from AlAdhan")

    raw: dict[str, str] = {}
    for name in PRAYER_NAMES:
        value = timings.get(name)
        if not isinstance(value, str):
            raise MalformedResponse(f"Missing time field: {name}")
        raw[name] = value
    return raw


async def fetch_timings(
    day: date,
    location: LocationConfig,
    client: httpx.AsyncClient | None = None,
) -> dict[str, str]:
    """Fetch the raw ``HH:MM[ (ZONE)]`` strings for one day and location."""
    url = aladhan_timings_url(day)
    params = aladhan_params(location)
    logger.info("Fetching timings for %s on %s", location.name, day.isoformat())

    if client is None:
        async with httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT_SEC,
            headers={"User-Agent": USER_AGENT},
        ) as owned:
            response = await _get_with_retries(owned, url, params)
    else:
        response = await _get_with_retries(client, url, params)

    if response.status_code >= 400:
        raise MalformedResponse(f"AlAdhan responded with HTTP {response.status_code}")

    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponse("Invalid response from AlAdhan") from exc

    return extract_timings(payload)
