"""Counter store contract and an in-process implementation."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from ..limits import Limit, is_unlimited
from .models import IncrementResult
from .periods import as_utc


class CounterStore(Protocol):
    """Atomic check-and-increment-within-ceiling over (subject, resource, period) keys."""

    def check_and_increment(
        self,
        subject_id: str,
        resource: str,
        period_key: str,
        limit: Limit,
        *,
        expires_at: Optional[datetime] = None,
    ) -> IncrementResult:
        ...

    def get_count(self, subject_id: str, resource: str, period_key: str) -> int:
        ...

    def purge_expired(self, now: datetime) -> int:
        ...


@dataclass
class _CounterRow:
    count: int
    expires_at: Optional[datetime] = None


class InMemoryCounterStore:
    """Single-process counter store suitable for tests and local development.

    The mutex is this engine's native conditional-update primitive: every
    increment is decided and applied while holding it, so the count can never
    pass the ceiling regardless of how many threads call in.
    """

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str, str], _CounterRow] = {}
        self._lock = Lock()

    def check_and_increment(
        self,
        subject_id: str,
        resource: str,
        period_key: str,
        limit: Limit,
        *,
        expires_at: Optional[datetime] = None,
    ) -> IncrementResult:
        key = (subject_id, resource, period_key)
        with self._lock:
            row = self._rows.get(key)
            current = row.count if row else 0
            if not is_unlimited(limit) and current >= limit:
                return IncrementResult(allowed=False, count=current)
            if row is None:
                row = _CounterRow(count=0)
                self._rows[key] = row
            row.count = current + 1
            if expires_at is not None:
                row.expires_at = as_utc(expires_at)
            return IncrementResult(allowed=True, count=row.count)

    def get_count(self, subject_id: str, resource: str, period_key: str) -> int:
        with self._lock:
            row = self._rows.get((subject_id, resource, period_key))
            return row.count if row else 0

    def purge_expired(self, now: datetime) -> int:
        cutoff = as_utc(now)
        with self._lock:
            expired = [
                key
                for key, row in self._rows.items()
                if row.expires_at is not None and row.expires_at <= cutoff
            ]
            for key in expired:
                self._rows.pop(key, None)
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._rows.clear()
