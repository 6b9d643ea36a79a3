"""Core service coordinating plan changes, proration and downgrade cascades."""
from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional, Protocol, Sequence

from ..downgrades.models import DowngradeStepResult, StepOutcome
from ..downgrades.service import DowngradeService
from ..entitlements.catalog import compare_rank, get_plan_definition, upgrade_benefits
from ..entitlements.models import PlanDefinition, PlanKey, Subscription
from ..entitlements.service import SubscriptionRepository
from .models import (
    BillingAuditEvent,
    BillingAuditEventType,
    PlanChangeDirection,
    PlanChangeQuote,
    PlanChangeResult,
)
from .proration import billing_period, days_remaining_in_period, prorate


class BillingNotifier(Protocol):
    """Dispatches billing related notifications to end users."""

    def notify_downgrade_incomplete(
        self, subject_id: str, to_plan: PlanKey, failed_steps: Sequence[DowngradeStepResult]
    ) -> None:
        ...


class BillingEventLogger(Protocol):
    """Captures structured billing audit events."""

    def log(self, event: BillingAuditEvent) -> None:
        ...


# ``slots`` support for ``dataclass`` was added in Python 3.10.
_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(**_dataclass_kwargs)
class PlanChangeService:
    """Quotes and applies plan changes for a subject."""

    repository: SubscriptionRepository
    downgrade_service: DowngradeService
    notifier: BillingNotifier
    event_logger: BillingEventLogger
    clock: Optional[Callable[[], datetime]] = None

    def _today(self) -> date:
        now = self.clock() if self.clock else datetime.now(timezone.utc)
        return now.date()

    def _current_subscription(self, subject_id: str) -> Subscription:
        subscription = self.repository.get_subscription(subject_id)
        if subscription is None:
            # No row yet means the free plan with a cycle starting today.
            return Subscription(subject_id=subject_id, plan_key=PlanKey.FREE, billing_anchor=self._today())
        return subscription

    def quote_plan_change(self, subject_id: str, to_plan: PlanKey | str) -> PlanChangeQuote:
        """Describe the cost and consequences of moving ``subject_id`` to ``to_plan``."""

        subscription = self._current_subscription(subject_id)
        current = get_plan_definition(subscription.plan_key)
        target = get_plan_definition(to_plan)
        return self._quote(subscription, current, target)

    def change_plan(self, subject_id: str, to_plan: PlanKey | str, *, confirm: bool = False) -> PlanChangeResult:
        """Move ``subject_id`` to ``to_plan``.

        Downgrades that would deactivate or restrict resources are refused
        unless ``confirm`` is set.
        """

        subscription = self._current_subscription(subject_id)
        current = get_plan_definition(subscription.plan_key)
        target = get_plan_definition(to_plan)
        quote = self._quote(subscription, current, target)

        if quote.direction is PlanChangeDirection.UNCHANGED:
            raise ValueError(f"Subject is already on the {target.display_name} plan")

        if quote.direction is PlanChangeDirection.UPGRADE:
            self.repository.update_plan(subject_id, target.key)
            self.event_logger.log(
                BillingAuditEvent(
                    event_type=BillingAuditEventType.PLAN_UPGRADED,
                    subject_id=subject_id,
                    metadata={
                        "from_plan": current.key.value,
                        "to_plan": target.key.value,
                        "net": str(quote.proration.net),
                    },
                )
            )
            return PlanChangeResult(
                subject_id=subject_id,
                from_plan=current.key,
                to_plan=target.key,
                direction=quote.direction,
                committed=True,
                proration=quote.proration,
            )

        if quote.requires_confirmation and not confirm:
            raise PermissionError("Downgrade affects existing resources and must be confirmed")

        steps = self.downgrade_service.execute_downgrade(subject_id, target)
        committed = any(step.outcome is StepOutcome.COMMITTED for step in steps)
        failed = [step for step in steps if step.outcome is StepOutcome.FAILED]
        for step in failed:
            self.event_logger.log(
                BillingAuditEvent(
                    event_type=BillingAuditEventType.DOWNGRADE_STEP_FAILED,
                    subject_id=subject_id,
                    metadata={"step": step.step, "error": step.error or ""},
                )
            )
        if failed:
            self.notifier.notify_downgrade_incomplete(subject_id, target.key, failed)

        if committed:
            self.event_logger.log(
                BillingAuditEvent(
                    event_type=BillingAuditEventType.PLAN_DOWNGRADED,
                    subject_id=subject_id,
                    metadata={
                        "from_plan": current.key.value,
                        "to_plan": target.key.value,
                        "net": str(quote.proration.net),
                    },
                )
            )

        return PlanChangeResult(
            subject_id=subject_id,
            from_plan=current.key,
            to_plan=target.key,
            direction=quote.direction,
            committed=committed,
            proration=quote.proration,
            steps=tuple(steps),
        )

    def _quote(
        self,
        subscription: Subscription,
        current: PlanDefinition,
        target: PlanDefinition,
    ) -> PlanChangeQuote:
        today = self._today()
        period = billing_period(subscription.billing_anchor, today)
        days_remaining = days_remaining_in_period(subscription.billing_anchor, today)
        proration = prorate(days_remaining, period.total_days, current.price, target.price)

        ordering = compare_rank(target, current)
        if ordering > 0:
            direction = PlanChangeDirection.UPGRADE
        elif ordering < 0:
            direction = PlanChangeDirection.DOWNGRADE
        else:
            direction = PlanChangeDirection.UNCHANGED

        impact = None
        benefits: tuple[str, ...] = ()
        if direction is PlanChangeDirection.DOWNGRADE:
            impact = self.downgrade_service.plan_downgrade_impact(subscription.subject_id, current, target)
        elif direction is PlanChangeDirection.UPGRADE:
            benefits = tuple(upgrade_benefits(current, target))

        return PlanChangeQuote(
            subject_id=subscription.subject_id,
            from_plan=current.key,
            to_plan=target.key,
            direction=direction,
            period=period,
            days_remaining=days_remaining,
            proration=proration,
            impact=impact,
            benefits=benefits,
        )


__all__ = ["BillingEventLogger", "BillingNotifier", "PlanChangeService"]
