from __future__ import annotations

import time
from datetime import datetime, timezone


def monotonic_ms() -> int:
    """Monotonic clock in milliseconds.

    Use this for latency measurements.
    """

    return int(time.monotonic() * 1000)


def utc_timestamp() -> str:
    """ISO-8601 wall clock time with millisecond precision (UTC)."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")
