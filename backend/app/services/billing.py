"""Application wiring for the plan change service."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Sequence

from ..billing import BillingAuditEvent, BillingEventLogger, BillingNotifier, PlanChangeService
from ..billing.repository import PostgresSubscriptionRepository
from ..downgrades import DowngradeStepResult
from ..entitlements import PlanKey
from .entitlements import get_downgrade_service


logger = logging.getLogger("billing")


class LoggingBillingNotifier(BillingNotifier):
    """Notifier that records billing notifications to the application logger."""

    def notify_downgrade_incomplete(
        self, subject_id: str, to_plan: PlanKey, failed_steps: Sequence[DowngradeStepResult]
    ) -> None:
        logger.warning(
            "Downgrade incomplete subject=%s target=%s failed_steps=%s",
            subject_id,
            to_plan.value,
            ",".join(step.step for step in failed_steps),
        )


class LoggingBillingEventLogger(BillingEventLogger):
    """Simple event logger forwarding billing audit events to logging."""

    def log(self, event: BillingAuditEvent) -> None:
        logger.info(
            "Billing event %s subject=%s metadata=%s",
            event.event_type.value,
            event.subject_id,
            event.metadata,
        )


@lru_cache(maxsize=1)
def get_plan_change_service() -> PlanChangeService:
    return PlanChangeService(
        repository=PostgresSubscriptionRepository(),
        downgrade_service=get_downgrade_service(),
        notifier=LoggingBillingNotifier(),
        event_logger=LoggingBillingEventLogger(),
    )


__all__ = ["get_plan_change_service", "LoggingBillingNotifier", "LoggingBillingEventLogger"]
