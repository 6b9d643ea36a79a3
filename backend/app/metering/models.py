"""Value objects shared by counter stores and their callers."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FailurePolicy(str, Enum):
    """What a counter class does when its store is unreachable."""

    OPEN = "open"
    CLOSED = "closed"


class IncrementResult(BaseModel):
    """Outcome of a conditional increment. ``count`` is the stored value afterwards."""

    allowed: bool
    count: int

    model_config = ConfigDict(frozen=True)


class RateLimitResult(BaseModel):
    """Outcome of a rate limit check for one window."""

    allowed: bool
    count: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    period_key: str
    resets_at: datetime
    retry_after_seconds: int = 0
    degraded: bool = False

    model_config = ConfigDict(frozen=True)
