"""Usage level evaluation for quota warnings."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..limits import Limit, is_unlimited

_DEFAULT_WARN_RATIO = 0.8


class UsageLevel(str, Enum):
    OK = "ok"
    WARNING = "warning"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class UsageStatus:
    """Represents how close a counter is to its ceiling."""

    level: UsageLevel
    percent: int
    used: int
    limit: Limit


def evaluate_usage_status(used: int, limit: Limit, warn_ratio: float = _DEFAULT_WARN_RATIO) -> UsageStatus:
    """Classify usage as ``ok``, ``warning`` (from ``warn_ratio``) or ``blocked``."""

    if used < 0:
        raise ValueError("used must be >= 0")
    if is_unlimited(limit):
        return UsageStatus(level=UsageLevel.OK, percent=0, used=used, limit=limit)
    if limit <= 0:
        return UsageStatus(level=UsageLevel.BLOCKED, percent=100, used=used, limit=limit)

    percent = min(100, round(used * 100 / limit))
    if used >= limit:
        level = UsageLevel.BLOCKED
    elif used >= limit * warn_ratio:
        level = UsageLevel.WARNING
    else:
        level = UsageLevel.OK
    return UsageStatus(level=level, percent=percent, used=used, limit=limit)
