"""Domain models for proration and plan changes."""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..downgrades.models import DowngradeImpact, DowngradeStepResult
from ..entitlements.models import PlanKey


class ProrationResult(BaseModel):
    """Amounts owed for the rest of a billing cycle. Negative ``net`` is a credit."""

    credit: Decimal
    charge: Decimal
    net: Decimal

    model_config = ConfigDict(frozen=True)


class BillingPeriod(BaseModel):
    """A monthly cycle. ``end`` is exclusive."""

    start: date
    end: date

    model_config = ConfigDict(frozen=True)

    @property
    def total_days(self) -> int:
        return (self.end - self.start).days


class PlanChangeDirection(str, Enum):
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    UNCHANGED = "unchanged"


class PlanChangeQuote(BaseModel):
    """Everything a subject needs to confirm a plan change."""

    subject_id: str
    from_plan: PlanKey
    to_plan: PlanKey
    direction: PlanChangeDirection
    period: BillingPeriod
    days_remaining: int
    proration: ProrationResult
    impact: Optional[DowngradeImpact] = None
    benefits: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def requires_confirmation(self) -> bool:
        return self.impact is not None and bool(self.impact.actions)


class PlanChangeResult(BaseModel):
    subject_id: str
    from_plan: PlanKey
    to_plan: PlanKey
    direction: PlanChangeDirection
    committed: bool
    proration: ProrationResult
    steps: tuple[DowngradeStepResult, ...] = ()

    model_config = ConfigDict(frozen=True)


class BillingAuditEventType(str, Enum):
    """Audit event categories emitted by the billing subsystem."""

    PLAN_UPGRADED = "plan_upgraded"
    PLAN_DOWNGRADED = "plan_downgraded"
    DOWNGRADE_STEP_FAILED = "downgrade_step_failed"


class BillingAuditEvent(BaseModel):
    """Structured audit event for analytics and notifications."""

    event_type: BillingAuditEventType
    subject_id: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)
