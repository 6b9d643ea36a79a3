from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from backend.app.entitlements import UNLIMITED, Action, ConfigurationError, Decision, PlanKey, get_plan_definition
from backend.app.feature_gates import (
    EntitlementContext,
    FeatureGateError,
    UsageLevel,
    evaluate_usage_status,
    require_decision,
    require_rate_limit,
)
from backend.app.metering import RateLimitResult


@pytest.fixture
def starter_context() -> EntitlementContext:
    return EntitlementContext(get_plan_definition(PlanKey.STARTER))


def test_feature_gate_error_payload_and_headers() -> None:
    error = FeatureGateError(
        code="rate_limit_exceeded",
        message="Too many requests.",
        status_code=429,
        detail={"limit": 20},
        upgrade_to=PlanKey.PRO,
        retry_after_seconds=7,
    )

    assert error.payload == {
        "error": "rate_limit_exceeded",
        "message": "Too many requests.",
        "limit": 20,
        "upgrade_to": "pro",
        "retry_after": 7,
    }
    assert error.headers == {"Retry-After": "7"}
    assert str(error) == "Too many requests."


def test_feature_gate_error_defaults_to_forbidden_without_headers() -> None:
    http_exc = FeatureGateError(code="entitlement_required", message="Nope").to_http_exception()

    assert http_exc.status_code == 403
    assert http_exc.headers is None
    assert http_exc.detail == {"error": "entitlement_required", "message": "Nope"}


def test_entitlement_context_helpers(starter_context: EntitlementContext) -> None:
    assert starter_context.plan_key == PlanKey.STARTER
    assert starter_context.has("desktop_performance") is True
    assert starter_context.has("code_fixes") is False
    assert starter_context.limit("theme_analyses_per_month") == 5
    assert starter_context.feature_flags["recommendations"] == "unlimited"


def test_require_decision_passes_allowed_decisions() -> None:
    decision = Decision(action="theme_analysis", allowed=True, used=1, limit=5)

    assert require_decision(decision) is decision


def test_require_decision_maps_quota_denial() -> None:
    decision = Decision(
        action="theme_analysis",
        allowed=False,
        reason="Limit reached",
        upgrade_suggestion=PlanKey.PRO,
        used=5,
        limit=5,
        period_key="2026-01",
    )

    with pytest.raises(FeatureGateError) as exc:
        require_decision(decision)

    http_exc = exc.value.to_http_exception()
    assert isinstance(http_exc, HTTPException)
    assert http_exc.status_code == 403
    assert http_exc.detail["error"] == "quota_exceeded"
    assert http_exc.detail["upgrade_to"] == "pro"
    assert http_exc.detail["limit"] == 5


def test_require_decision_maps_capability_denial() -> None:
    with pytest.raises(FeatureGateError) as exc:
        require_decision(Decision(action="code_fixes", allowed=False, upgrade_suggestion=PlanKey.PRO))

    assert exc.value.code == "entitlement_required"


def test_require_decision_maps_unverifiable_usage() -> None:
    decision = Decision(action="theme_analysis", allowed=False, degraded=True, limit=5)

    with pytest.raises(FeatureGateError) as exc:
        require_decision(decision)

    assert exc.value.code == "usage_unverifiable"
    assert exc.value.status_code == 503


def test_require_rate_limit_sets_retry_after() -> None:
    result = RateLimitResult(
        allowed=False,
        count=20,
        limit=20,
        remaining=0,
        period_key="2026-01-15-12-00",
        resets_at=datetime(2026, 1, 15, 12, 1, tzinfo=timezone.utc),
        retry_after_seconds=42,
    )

    with pytest.raises(FeatureGateError) as exc:
        require_rate_limit(result)

    http_exc = exc.value.to_http_exception()
    assert http_exc.status_code == 429
    assert http_exc.headers == {"Retry-After": "42"}


@pytest.mark.parametrize(
    "used,limit,level,percent",
    [
        (0, 5, UsageLevel.OK, 0),
        (3, 5, UsageLevel.OK, 60),
        (4, 5, UsageLevel.WARNING, 80),
        (5, 5, UsageLevel.BLOCKED, 100),
        (0, 0, UsageLevel.BLOCKED, 100),
        (1000, UNLIMITED, UsageLevel.OK, 0),
    ],
)
def test_evaluate_usage_status(used, limit, level, percent) -> None:
    evaluation = evaluate_usage_status(used, limit)

    assert evaluation.level is level
    assert evaluation.percent == percent


def test_context_usage_status_uses_monthly_limit(starter_context: EntitlementContext) -> None:
    assert starter_context.usage_status(Action.THEME_ANALYSIS, 4).level is UsageLevel.WARNING
    assert starter_context.usage_status("theme_analysis", 5).level is UsageLevel.BLOCKED

    pro = EntitlementContext(get_plan_definition(PlanKey.PRO), warn_ratio=0.5)
    assert pro.usage_status(Action.PERFORMANCE_TEST, 10_000).level is UsageLevel.OK


def test_context_usage_status_rejects_unmetered_actions(starter_context: EntitlementContext) -> None:
    with pytest.raises(ValueError):
        starter_context.usage_status(Action.PDF_REPORT, 1)
    with pytest.raises(ConfigurationError):
        starter_context.usage_status("time_travel", 1)
