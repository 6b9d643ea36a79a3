"""Abuse rate limiting built on the counter store's conditional increment."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..entitlements.catalog import get_action_rule, limit_for
from ..entitlements.exceptions import ConfigurationError
from ..entitlements.models import Action, PlanDefinition
from ..limits import is_unlimited
from .exceptions import StoreUnavailableError
from .models import FailurePolicy, RateLimitResult
from .periods import Granularity, as_utc, period_end, period_key
from .store import CounterStore

logger = logging.getLogger(__name__)

API_CALLS_RESOURCE = "api_calls"


class RateLimiter:
    """Short-window counters. Fails open by default so a degraded store never
    denies legitimate traffic."""

    def __init__(
        self,
        store: CounterStore,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        failure_policy: FailurePolicy = FailurePolicy.OPEN,
        ttl_seconds: int = 300,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._failure_policy = failure_policy
        self._ttl = timedelta(seconds=max(ttl_seconds, 0))

    def check_api_calls(self, plan: PlanDefinition, identifier: str) -> RateLimitResult:
        """Count one API call against the plan's per-minute allowance."""

        limit = limit_for(plan, "api_calls_per_minute")
        return self._hit(identifier, API_CALLS_RESOURCE, limit, Granularity.MINUTE)

    def check_daily_action(self, plan: PlanDefinition, action: Action, subject_id: str) -> RateLimitResult:
        """Count one action against the plan's per-day allowance for it."""

        rule = get_action_rule(action)
        if rule.daily_limit is None:
            raise ConfigurationError(f"Action {action} has no daily rate limit")
        limit = limit_for(plan, rule.daily_limit)
        return self._hit(subject_id, f"{Action(action).value}:daily", limit, Granularity.DAY)

    def _hit(self, subject: str, resource: str, limit, granularity: Granularity) -> RateLimitResult:
        now = as_utc(self._clock())
        key = period_key(now, granularity)
        resets_at = period_end(now, granularity)
        retry_after = max(1, math.ceil((resets_at - now).total_seconds()))
        numeric_limit = None if is_unlimited(limit) else int(limit)

        try:
            result = self._store.check_and_increment(
                subject,
                resource,
                key,
                limit,
                expires_at=resets_at + self._ttl,
            )
        except StoreUnavailableError:
            allowed = self._failure_policy is FailurePolicy.OPEN
            logger.warning(
                "Rate limit store unavailable subject=%s resource=%s policy=%s",
                subject,
                resource,
                self._failure_policy.value,
            )
            return RateLimitResult(
                allowed=allowed,
                count=0,
                limit=numeric_limit,
                remaining=None,
                period_key=key,
                resets_at=resets_at,
                retry_after_seconds=0 if allowed else retry_after,
                degraded=True,
            )

        remaining = None if numeric_limit is None else max(0, numeric_limit - result.count)
        if not result.allowed:
            logger.info(
                "Rate limit exceeded subject=%s resource=%s period=%s limit=%s",
                subject,
                resource,
                key,
                numeric_limit,
            )
        return RateLimitResult(
            allowed=result.allowed,
            count=result.count,
            limit=numeric_limit,
            remaining=remaining,
            period_key=key,
            resets_at=resets_at,
            retry_after_seconds=0 if result.allowed else retry_after,
        )
