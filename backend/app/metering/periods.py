"""Period keys partitioning counters into non-overlapping windows."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum


class Granularity(str, Enum):
    MONTH = "month"
    DAY = "day"
    MINUTE = "minute"


_KEY_FORMATS = {
    Granularity.MONTH: "%Y-%m",
    Granularity.DAY: "%Y-%m-%d",
    Granularity.MINUTE: "%Y-%m-%d-%H-%M",
}


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def period_key(moment: datetime, granularity: Granularity = Granularity.MONTH) -> str:
    """Return the key of the window containing ``moment`` (UTC)."""

    return as_utc(moment).strftime(_KEY_FORMATS[granularity])


def period_start(moment: datetime, granularity: Granularity) -> datetime:
    value = as_utc(moment)
    if granularity is Granularity.MONTH:
        return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if granularity is Granularity.DAY:
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return value.replace(second=0, microsecond=0)


def period_end(moment: datetime, granularity: Granularity) -> datetime:
    """Return the first instant after the window containing ``moment``."""

    start = period_start(moment, granularity)
    if granularity is Granularity.MONTH:
        if start.month == 12:
            return start.replace(year=start.year + 1, month=1)
        return start.replace(month=start.month + 1)
    if granularity is Granularity.DAY:
        return start + timedelta(days=1)
    return start + timedelta(minutes=1)
