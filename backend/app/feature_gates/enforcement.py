"""Helpers turning entitlement decisions into API failures."""
from __future__ import annotations

from fastapi import status

from ..entitlements.models import Decision
from ..limits import is_unlimited
from ..metering.models import RateLimitResult
from .exceptions import FeatureGateError


def require_decision(decision: Decision) -> Decision:
    """Return ``decision`` when it allows the action, raise otherwise.

    Store outages surface as 503 ``usage_unverifiable``. Decisions without a
    limit are capability refusals (``entitlement_required``); the rest are
    ``quota_exceeded``. Both of those are 403.
    """

    if decision.allowed:
        return decision

    if decision.degraded:
        raise FeatureGateError(
            code="usage_unverifiable",
            message=decision.reason or "Usage could not be verified.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"action": decision.action},
        )

    if decision.limit is None:
        raise FeatureGateError(
            code="entitlement_required",
            message=decision.reason or "This feature is not included in your plan.",
            detail={"action": decision.action},
            upgrade_to=decision.upgrade_suggestion,
        )

    detail = {
        "action": decision.action,
        "used": decision.used,
        "limit": decision.limit.value if is_unlimited(decision.limit) else decision.limit,
    }
    if decision.period_key is not None:
        detail["period"] = decision.period_key
    raise FeatureGateError(
        code="quota_exceeded",
        message=decision.reason or "Usage limit reached.",
        detail=detail,
        upgrade_to=decision.upgrade_suggestion,
    )


def require_rate_limit(result: RateLimitResult) -> RateLimitResult:
    """Raise a 429 carrying ``Retry-After`` when the window is exhausted."""

    if result.allowed:
        return result

    raise FeatureGateError(
        code="rate_limit_exceeded",
        message="Too many requests. Please try again later.",
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={"limit": result.limit, "remaining": result.remaining},
        retry_after_seconds=result.retry_after_seconds,
    )
