from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from backend.app.entitlements import (
    LiveResource,
    LiveResourceType,
    PlanKey,
    Subscription,
    SubscriptionStatus,
    select_excess,
)
from backend.app.metering import InMemoryCounterStore, StoreUnavailableError


class FakeSubscriptionRepository:
    def __init__(self) -> None:
        self.records: Dict[str, Subscription] = {}
        self.fail_updates = False

    def add(
        self,
        subject_id: str,
        plan_key: PlanKey,
        *,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        billing_anchor: date = date(2026, 1, 1),
    ) -> Subscription:
        record = Subscription(
            subject_id=subject_id,
            plan_key=plan_key,
            status=status,
            billing_anchor=billing_anchor,
        )
        self.records[subject_id] = record
        return record

    def get_subscription(self, subject_id: str) -> Optional[Subscription]:
        return self.records.get(subject_id)

    def update_plan(self, subject_id: str, plan_key: PlanKey) -> Subscription:
        if self.fail_updates:
            raise StoreUnavailableError("subscription store offline")
        current = self.records.get(subject_id)
        if current is None:
            return self.add(subject_id, plan_key)
        updated = current.model_copy(update={"plan_key": plan_key})
        self.records[subject_id] = updated
        return updated


class FakeLiveResourceRepository:
    def __init__(self) -> None:
        self.rows: Dict[str, LiveResource] = {}
        self.failing_types: set[LiveResourceType] = set()
        self.failing_deactivations: set[LiveResourceType] = set()
        self.deactivate_calls: List[Tuple[str, LiveResourceType, int]] = []

    def add(
        self,
        resource_id: str,
        owner_id: str,
        resource_type: LiveResourceType,
        *,
        created_at: datetime,
        last_used_at: Optional[datetime] = None,
    ) -> LiveResource:
        row = LiveResource(
            id=resource_id,
            owner_id=owner_id,
            resource_type=resource_type,
            created_at=created_at,
            last_used_at=last_used_at,
        )
        self.rows[resource_id] = row
        return row

    def list_active(self, owner_id: str, resource_type: LiveResourceType) -> Sequence[LiveResource]:
        if resource_type in self.failing_types:
            raise StoreUnavailableError("live resource store offline")
        return [
            row
            for row in self.rows.values()
            if row.owner_id == owner_id and row.resource_type == resource_type and row.is_active
        ]

    def deactivate_excess(self, owner_id: str, resource_type: LiveResourceType, keep: int) -> List[str]:
        self.deactivate_calls.append((owner_id, resource_type, keep))
        if resource_type in self.failing_deactivations:
            raise StoreUnavailableError("live resource store offline")
        excess = select_excess(self.list_active(owner_id, resource_type), keep)
        for row in excess:
            self.rows[row.id] = row.model_copy(update={"is_active": False})
        return [row.id for row in excess]

    def active_ids(self, owner_id: str, resource_type: LiveResourceType) -> set[str]:
        return {row.id for row in self.list_active(owner_id, resource_type)}


class UnavailableCounterStore:
    def check_and_increment(self, *args, **kwargs):
        raise StoreUnavailableError("counter store offline")

    def get_count(self, *args, **kwargs):
        raise StoreUnavailableError("counter store offline")

    def purge_expired(self, now):
        raise StoreUnavailableError("counter store offline")


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def counter_store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def subscriptions() -> FakeSubscriptionRepository:
    return FakeSubscriptionRepository()


@pytest.fixture
def live_resources() -> FakeLiveResourceRepository:
    return FakeLiveResourceRepository()


@pytest.fixture
def unavailable_store() -> UnavailableCounterStore:
    return UnavailableCounterStore()
