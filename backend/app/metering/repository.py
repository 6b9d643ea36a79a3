"""PostgreSQL-backed counter store."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import psycopg2

from ..database import PostgresRepository
from ..limits import Limit, is_unlimited
from .exceptions import StoreUnavailableError
from .models import IncrementResult

logger = logging.getLogger(__name__)

# The conditional upsert is the only statement that mutates a counter. The
# INSERT path is skipped entirely for non-positive limits and the UPDATE path
# only fires while the stored count is below the ceiling. A row comes back only
# when the counter was incremented.
_CHECK_AND_INCREMENT_SQL = """
INSERT INTO usage_counters (subject_id, resource, period_key, count, expires_at)
SELECT %(subject_id)s, %(resource)s, %(period_key)s, 1, %(expires_at)s
WHERE %(limit)s::integer IS NULL OR %(limit)s::integer > 0
ON CONFLICT (subject_id, resource, period_key) DO UPDATE SET
    count = usage_counters.count + 1,
    expires_at = COALESCE(EXCLUDED.expires_at, usage_counters.expires_at),
    updated_at = NOW()
WHERE %(limit)s::integer IS NULL OR usage_counters.count < %(limit)s::integer
RETURNING count
"""

_GET_COUNT_SQL = """
SELECT count
FROM usage_counters
WHERE subject_id = %s AND resource = %s AND period_key = %s
LIMIT 1
"""


class PostgresCounterStore(PostgresRepository):
    """Counter store whose atomicity comes from PostgreSQL's conditional upsert."""

    def check_and_increment(
        self,
        subject_id: str,
        resource: str,
        period_key: str,
        limit: Limit,
        *,
        expires_at: Optional[datetime] = None,
    ) -> IncrementResult:
        params = {
            "subject_id": subject_id,
            "resource": resource,
            "period_key": period_key,
            "limit": None if is_unlimited(limit) else int(limit),
            "expires_at": expires_at,
        }
        try:
            with self._cursor() as cursor:
                cursor.execute(_CHECK_AND_INCREMENT_SQL, params)
                row = cursor.fetchone()
                if row:
                    return IncrementResult(allowed=True, count=int(row["count"]))
                # Denied. Re-read in a fresh statement so the reported count
                # includes increments committed by concurrent callers.
                cursor.execute(_GET_COUNT_SQL, (subject_id, resource, period_key))
                current = cursor.fetchone()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            logger.warning(
                "Counter store unavailable subject=%s resource=%s period=%s",
                subject_id,
                resource,
                period_key,
            )
            raise StoreUnavailableError("Counter store is unavailable") from exc

        return IncrementResult(allowed=False, count=int(current["count"]) if current else 0)

    def get_count(self, subject_id: str, resource: str, period_key: str) -> int:
        try:
            with self._cursor() as cursor:
                cursor.execute(_GET_COUNT_SQL, (subject_id, resource, period_key))
                row = cursor.fetchone()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailableError("Counter store is unavailable") from exc
        return int(row["count"]) if row else 0

    def purge_expired(self, now: datetime) -> int:
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    """
                    DELETE FROM usage_counters
                    WHERE expires_at IS NOT NULL AND expires_at <= %s
                    """,
                    (now,),
                )
                deleted = cursor.rowcount
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailableError("Counter store is unavailable") from exc
        logger.debug("Purged %s expired counter rows", deleted)
        return deleted


__all__ = ["PostgresCounterStore"]
