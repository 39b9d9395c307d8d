"""Clock helpers for run summaries."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def elapsed_seconds(started_monotonic: float) -> float:
    """Seconds since a ``time.monotonic()`` reading, rounded to milliseconds."""

    return round(time.monotonic() - started_monotonic, 3)
