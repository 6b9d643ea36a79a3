"""Persistence layer for subscriptions."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

import psycopg2

from ..database import PostgresRepository
from ..entitlements.models import PlanKey, Subscription, SubscriptionStatus
from ..metering.exceptions import StoreUnavailableError


def _row_to_subscription(row: dict) -> Subscription:
    return Subscription(
        subject_id=row["subject_id"],
        plan_key=PlanKey(row["plan_key"]),
        status=SubscriptionStatus(row["status"]),
        billing_anchor=row["billing_anchor"],
    )


class PostgresSubscriptionRepository(PostgresRepository):
    """Reads subscriptions and commits plan changes."""

    def __init__(self, *, conn=None, clock: Optional[Callable[[], datetime]] = None) -> None:
        super().__init__(conn=conn)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_subscription(self, subject_id: str) -> Optional[Subscription]:
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    """
                    SELECT subject_id, plan_key, status, billing_anchor
                    FROM subscriptions
                    WHERE subject_id = %s
                    LIMIT 1
                    """,
                    (subject_id,),
                )
                row = cursor.fetchone()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailableError("Subscription store is unavailable") from exc
        return _row_to_subscription(row) if row else None

    def update_plan(self, subject_id: str, plan_key: PlanKey) -> Subscription:
        """Set ``plan_key``, creating an active subscription anchored today if none exists."""

        try:
            with self._cursor() as cursor:
                cursor.execute(
                    """
                    INSERT INTO subscriptions (subject_id, plan_key, status, billing_anchor)
                    VALUES (%(subject_id)s, %(plan_key)s, %(status)s, %(billing_anchor)s)
                    ON CONFLICT (subject_id) DO UPDATE SET
                        plan_key = EXCLUDED.plan_key,
                        updated_at = NOW()
                    RETURNING subject_id, plan_key, status, billing_anchor
                    """,
                    {
                        "subject_id": subject_id,
                        "plan_key": PlanKey(plan_key).value,
                        "status": SubscriptionStatus.ACTIVE.value,
                        "billing_anchor": self._clock().date(),
                    },
                )
                row = cursor.fetchone()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailableError("Subscription store is unavailable") from exc
        if not row:
            raise RuntimeError("Failed to persist subscription")
        return _row_to_subscription(row)


__all__ = ["PostgresSubscriptionRepository"]
