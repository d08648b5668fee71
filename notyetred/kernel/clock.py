import asyncio
import time
from datetime import datetime
from typing import Any, Callable, Dict

import requests

from notyetred.domain import config
from notyetred.domain.logging import setup_logger

logger = setup_logger(__name__)

class Clock:
    """Local wall-clock time in milliseconds, shifted by a time-sync correction."""

    def __init__(self, correction: int = 0, time_source: Callable[[], float] = time.time):
        self.correction = correction
        self.time_source = time_source

    def now(self) -> int:
        return int(self.time_source() * 1000) + self.correction

def parse_server_time(payload: Dict[str, Any]) -> float:
    """Reads a server timestamp in milliseconds from a time API response."""
    if "unixtime_ms" in payload:
        return float(payload["unixtime_ms"])
    if "utc_datetime" in payload:
        return datetime.fromisoformat(payload["utc_datetime"]).timestamp() * 1000
    if "unixtime" in payload:
        return float(payload["unixtime"]) * 1000
    raise KeyError(f"no timestamp in time server response: {sorted(payload)}")

def request_time_correction(url: str, timeout: float, time_source: Callable[[], float] = time.time) -> int:
    sent = time_source()
    response = requests.get(url, timeout=timeout)
    received = time_source()
    response.raise_for_status()

    server_ms = parse_server_time(response.json())
    round_trip_ms = (received - sent) * 1000
    return int(round(server_ms + round_trip_ms / 2 - received * 1000))

async def fetch_time_correction(url: str = config.TIME_SYNC_URL,
                                timeout: float = config.TIME_SYNC_TIMEOUT,
                                time_source: Callable[[], float] = time.time) -> int:
    """
    Asks a time server how far the local clock is off.

    Never raises: any network or format problem falls back to a correction
    of 0 so the simulation keeps running on local time.
    """
    try:
        correction = await asyncio.to_thread(request_time_correction, url, timeout, time_source)
    except (requests.RequestException, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Time sync with {url} failed, using local time: {e}")
        return 0
    logger.info(f"Time sync with {url}: correction {correction} ms")
    return correction
