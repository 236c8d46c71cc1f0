"""Time helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_us() -> int:
    """Return current timestamp in microseconds."""
    return time.time_ns() // 1000


def us_to_datetime(value: int) -> datetime:
    """Convert epoch microseconds to a timezone-aware UTC datetime."""
    seconds, micros = divmod(int(value), 1_000_000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=micros)
