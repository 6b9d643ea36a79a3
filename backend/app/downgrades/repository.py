"""PostgreSQL-backed live resource repository."""
from __future__ import annotations

import logging
from typing import List, Mapping

import psycopg2

from ..database import PostgresRepository
from ..entitlements.models import LiveResource, LiveResourceType
from ..metering.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

# Ordering must match ``most_recently_used_first``: a never-used row ranks by
# its ``created_at``, ties fall back to newer ``created_at`` then the larger id.
_DEACTIVATE_EXCESS_SQL = """
WITH excess AS (
    SELECT id
    FROM live_resources
    WHERE owner_id = %(owner_id)s
      AND resource_type = %(resource_type)s
      AND is_active
    ORDER BY COALESCE(last_used_at, created_at) DESC, created_at DESC, id DESC
    OFFSET %(keep)s
    FOR UPDATE
)
UPDATE live_resources AS r
SET is_active = FALSE,
    deactivated_at = NOW()
FROM excess
WHERE r.id = excess.id
RETURNING r.id, r.last_used_at, r.created_at
"""


def _row_to_resource(row: Mapping[str, object]) -> LiveResource:
    return LiveResource(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        resource_type=LiveResourceType(row["resource_type"]),
        is_active=bool(row["is_active"]),
        last_used_at=row.get("last_used_at"),
        created_at=row["created_at"],
    )


class PostgresLiveResourceRepository(PostgresRepository):
    """Reads and deactivates workspaces and team members."""

    def list_active(self, owner_id: str, resource_type: LiveResourceType) -> List[LiveResource]:
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    """
                    SELECT id, owner_id, resource_type, is_active, last_used_at, created_at
                    FROM live_resources
                    WHERE owner_id = %s AND resource_type = %s AND is_active
                    ORDER BY COALESCE(last_used_at, created_at) DESC, created_at DESC, id DESC
                    """,
                    (owner_id, LiveResourceType(resource_type).value),
                )
                rows = cursor.fetchall()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailableError("Live resource store is unavailable") from exc
        return [_row_to_resource(row) for row in rows]

    def deactivate_excess(self, owner_id: str, resource_type: LiveResourceType, keep: int) -> List[str]:
        if keep < 0:
            raise ValueError("keep must be >= 0")
        params = {
            "owner_id": owner_id,
            "resource_type": LiveResourceType(resource_type).value,
            "keep": keep,
        }
        try:
            with self._cursor() as cursor:
                cursor.execute(_DEACTIVATE_EXCESS_SQL, params)
                rows = cursor.fetchall()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            logger.warning("Live resource store unavailable owner=%s type=%s", owner_id, params["resource_type"])
            raise StoreUnavailableError("Live resource store is unavailable") from exc

        # RETURNING carries no order guarantee; report least recently used first.
        rows = sorted(
            rows,
            key=lambda row: (
                row["last_used_at"] or row["created_at"],
                row["created_at"],
                str(row["id"]),
            ),
        )
        return [str(row["id"]) for row in rows]


__all__ = ["PostgresLiveResourceRepository"]
