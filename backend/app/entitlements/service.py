"""Service deciding whether a subject may perform a gated action."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from ..limits import UNLIMITED, Limit, is_unlimited, limit_allows
from ..metering.exceptions import StoreUnavailableError
from ..metering.models import FailurePolicy
from ..metering.periods import Granularity, period_key
from ..metering.store import CounterStore
from .catalog import (
    ACTION_RULES,
    CAPABILITY_LABELS,
    LIMIT_LABELS,
    LIVE_RESOURCE_LIMITS,
    ActionRule,
    cheapest_plan_with,
    get_action_rule,
    get_plan_definition,
    has_capability,
    limit_for,
)
from .live_resources import LiveResourceRepository, most_recently_used_first
from .models import (
    Action,
    Decision,
    LiveResourceType,
    PlanDefinition,
    PlanKey,
    Subscription,
    UsageLine,
    UsageSummary,
)

logger = logging.getLogger(__name__)


class SubscriptionRepository(Protocol):
    """Data access layer for subscription records."""

    def get_subscription(self, subject_id: str) -> Optional[Subscription]:
        ...

    def update_plan(self, subject_id: str, plan_key: PlanKey) -> Subscription:
        ...


class EntitlementService:
    """Coordinates plan resolution, capability checks and metered quotas."""

    def __init__(
        self,
        counter_store: CounterStore,
        subscription_repository: SubscriptionRepository,
        live_resource_repository: LiveResourceRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        quota_failure_policy: FailurePolicy = FailurePolicy.CLOSED,
    ) -> None:
        self._counter_store = counter_store
        self._subscription_repository = subscription_repository
        self._live_resource_repository = live_resource_repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._quota_failure_policy = quota_failure_policy

    def resolve_plan(self, subject_id: str) -> PlanDefinition:
        """Return the plan a subject is currently entitled to.

        Subjects without a subscription, or whose subscription lapsed, fall
        back to the free plan.
        """

        subscription = self._subscription_repository.get_subscription(subject_id)
        if subscription is None or not subscription.is_entitled:
            return get_plan_definition(PlanKey.FREE)
        return get_plan_definition(subscription.plan_key)

    def can_perform(
        self,
        plan: PlanDefinition,
        action: Action | str,
        subject_id: str,
        *,
        preview: bool = False,
    ) -> Decision:
        """Decide whether ``subject_id`` may perform ``action`` on ``plan``.

        Countable actions consume one unit of the monthly quota unless
        ``preview`` is set, in which case the counter is only read.
        """

        rule = get_action_rule(action)
        action_value = Action(action).value
        if not rule.is_countable:
            return self._check_capability(plan, action_value, rule)
        return self._check_quota(plan, action_value, rule, subject_id, preview=preview)

    def usage_summary(self, plan: PlanDefinition, subject_id: str) -> UsageSummary:
        """Report used/limit/remaining for every countable action this month."""

        key = period_key(self._clock(), Granularity.MONTH)
        lines: List[UsageLine] = []
        for action, rule in ACTION_RULES.items():
            if not rule.is_countable:
                continue
            limit = limit_for(plan, rule.monthly_limit)
            used = self._counter_store.get_count(subject_id, action.value, key)
            remaining: Limit = UNLIMITED if is_unlimited(limit) else max(0, limit - used)
            lines.append(UsageLine(action=action, used=used, limit=limit, remaining=remaining))
        return UsageSummary(subject_id=subject_id, plan=plan.key, period_key=key, lines=tuple(lines))

    def can_use_live_resource(
        self,
        plan: PlanDefinition,
        subject_id: str,
        resource_type: LiveResourceType | str,
        resource_id: str,
    ) -> Decision:
        """Decide whether an active workspace or team member still has access.

        Only the most recently used rows within the plan limit keep access.
        """

        resource_type = LiveResourceType(resource_type)
        limit_name = LIVE_RESOURCE_LIMITS[resource_type]
        limit = limit_for(plan, limit_name)
        active = self._live_resource_repository.list_active(subject_id, resource_type)
        ranked = [resource.id for resource in most_recently_used_first(active)]
        if resource_id not in ranked:
            raise LookupError(f"No active {resource_type.value} {resource_id} for subject {subject_id}")

        position = ranked.index(resource_id)
        if is_unlimited(limit) or position < limit:
            return Decision(
                action=resource_type.value,
                allowed=True,
                used=len(ranked),
                limit=limit,
            )

        suggestion = cheapest_plan_with(resource=limit_name, above=limit)
        logger.info(
            "Live resource over limit subject=%s type=%s id=%s limit=%s",
            subject_id,
            resource_type.value,
            resource_id,
            limit,
        )
        return Decision(
            action=resource_type.value,
            allowed=False,
            reason=f"Your plan includes {limit} {LIMIT_LABELS[limit_name]}",
            upgrade_suggestion=suggestion.key if suggestion else None,
            used=len(ranked),
            limit=limit,
        )

    def _check_capability(self, plan: PlanDefinition, action: str, rule: ActionRule) -> Decision:
        if has_capability(plan, rule.capability):
            return Decision(action=action, allowed=True)

        suggestion = cheapest_plan_with(rule.capability)
        label = CAPABILITY_LABELS[rule.capability]
        reason = f"{label} is not included in the {plan.display_name} plan"
        if suggestion is not None:
            reason = f"{label} requires the {suggestion.display_name} plan"
        return Decision(
            action=action,
            allowed=False,
            reason=reason,
            upgrade_suggestion=suggestion.key if suggestion else None,
        )

    def _check_quota(
        self,
        plan: PlanDefinition,
        action: str,
        rule: ActionRule,
        subject_id: str,
        *,
        preview: bool,
    ) -> Decision:
        limit = limit_for(plan, rule.monthly_limit)
        key = period_key(self._clock(), Granularity.MONTH)

        try:
            if preview:
                used = self._counter_store.get_count(subject_id, action, key)
                allowed = limit_allows(limit, used)
            else:
                result = self._counter_store.check_and_increment(subject_id, action, key, limit)
                used, allowed = result.count, result.allowed
        except StoreUnavailableError:
            allowed = self._quota_failure_policy is FailurePolicy.OPEN
            logger.warning(
                "Quota store unavailable subject=%s action=%s policy=%s",
                subject_id,
                action,
                self._quota_failure_policy.value,
            )
            return Decision(
                action=action,
                allowed=allowed,
                reason=None if allowed else "Usage could not be verified, please retry shortly",
                limit=limit,
                period_key=key,
                degraded=True,
            )

        if allowed:
            return Decision(action=action, allowed=True, used=used, limit=limit, period_key=key)

        suggestion = cheapest_plan_with(resource=rule.monthly_limit, above=limit)
        logger.info(
            "Quota exhausted subject=%s action=%s period=%s used=%s limit=%s",
            subject_id,
            action,
            key,
            used,
            limit,
        )
        return Decision(
            action=action,
            allowed=False,
            reason=f"Limit reached: {used} of {limit} {LIMIT_LABELS[rule.monthly_limit]} used",
            upgrade_suggestion=suggestion.key if suggestion else None,
            used=used,
            limit=limit,
            period_key=key,
        )


__all__ = ["EntitlementService", "SubscriptionRepository"]
