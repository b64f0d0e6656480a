# src/tvir/common/time.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_SECOND = timedelta(seconds=1)


def utc_now() -> datetime:
    """UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def fixed_offset(hours: float) -> timezone:
    """Fixed-offset zone, e.g. fixed_offset(-1.0) for GMT-1."""
    return timezone(timedelta(hours=hours))


def to_epoch_seconds(dt: datetime) -> int:
    """
    Whole seconds since the epoch.
    Sub-second precision is truncated away so comparisons run at one-second granularity.
    """
    if dt.tzinfo is None:
        raise ValueError(f"naive datetime has no defined epoch offset: {dt!r}")
    delta = dt - EPOCH
    if delta < timedelta(0):
        return -(-delta // _ONE_SECOND)
    return delta // _ONE_SECOND


def from_epoch_seconds(seconds: int | float) -> datetime:
    return EPOCH + timedelta(seconds=seconds)


def tolerance_seconds(duration_seconds: float, percentage: float) -> float:
    """Grace window as a percentage of a program duration (seconds)."""
    return float(duration_seconds) * float(percentage) / 100.0
