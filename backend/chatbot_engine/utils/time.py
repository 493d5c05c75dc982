"""Time helpers. Persisted timestamps are epoch milliseconds."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ms() -> int:
    return int(time.time() * 1000)


def minutes_ago_ms(minutes: int, reference_ms: int | None = None) -> int:
    """Epoch milliseconds ``minutes`` before ``reference_ms`` (default: now)."""
    base = now_ms() if reference_ms is None else reference_ms
    return base - minutes * 60 * 1000


def ms_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


__all__ = ["now_ms", "minutes_ago_ms", "ms_to_datetime"]
