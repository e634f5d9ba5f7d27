"""Named sampling intervals understood by the metrics backend."""
from __future__ import annotations

from typing import Dict

from .errors import InvalidSpecError

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

RESOLUTIONS: Dict[str, int] = {
    "1m": MINUTE_MS,
    "5m": 5 * MINUTE_MS,
    "10m": 10 * MINUTE_MS,
    "15m": 15 * MINUTE_MS,
    "30m": 30 * MINUTE_MS,
    "1h": HOUR_MS,
    "6h": 6 * HOUR_MS,
    "12h": 12 * HOUR_MS,
    "1d": DAY_MS,
    "7d": 7 * DAY_MS,
}


def resolution_ms(name: str) -> int:
    try:
        return RESOLUTIONS[name]
    except (KeyError, TypeError):
        raise InvalidSpecError(f"unknown resolution {name!r}") from None
