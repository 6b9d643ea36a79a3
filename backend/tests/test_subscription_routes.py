from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from backend.app.billing import PlanChangeService
from backend.app.downgrades import DowngradeService
from backend.app.entitlements import EntitlementService, LiveResourceType, PlanKey
from backend.app.metering import RateLimiter, load_metering_config
from backend.app.routes import subscription as subscription_routes
from backend.app.schemas.subscription import (
    ActionRequest,
    DecisionResponse,
    PlanChangeQuoteResponse,
    PlanChangeRequest,
    PlanChangeResponse,
    SubscriptionOverviewResponse,
)
from backend.app.services.billing import LoggingBillingEventLogger, LoggingBillingNotifier


@pytest.fixture
def wired(monkeypatch, counter_store, subscriptions, live_resources, clock):
    entitlements = EntitlementService(counter_store, subscriptions, live_resources, clock=clock)
    limiter = RateLimiter(counter_store, clock=clock)
    plan_changes = PlanChangeService(
        repository=subscriptions,
        downgrade_service=DowngradeService(live_resources, subscriptions),
        notifier=LoggingBillingNotifier(),
        event_logger=LoggingBillingEventLogger(),
        clock=clock,
    )
    monkeypatch.setattr(subscription_routes, "get_entitlement_service", lambda: entitlements)
    monkeypatch.setattr(subscription_routes, "get_rate_limiter", lambda: limiter)
    monkeypatch.setattr(subscription_routes, "get_plan_change_service", lambda: plan_changes)
    monkeypatch.setattr(subscription_routes, "get_metering_config", lambda: load_metering_config({}))
    return SimpleNamespace(subscriptions=subscriptions, live_resources=live_resources, counter_store=counter_store)


def test_get_subscription_reports_plan_and_usage(wired) -> None:
    wired.subscriptions.add("7", PlanKey.STARTER)
    subject = SimpleNamespace(id=7)
    for _ in range(4):
        wired.counter_store.check_and_increment("7", "theme_analysis", "2026-01", 5)

    response = subscription_routes.get_subscription(current_subject=subject)

    assert isinstance(response, SubscriptionOverviewResponse)
    assert response.plan == PlanKey.STARTER
    usage = {line.action: line for line in response.usage}
    assert usage["theme_analysis"].used == 4
    assert usage["theme_analysis"].status == "warning"
    assert usage["performance_test"].status == "ok"
    assert response.model_dump(by_alias=True)["displayName"] == "Starter"


def test_perform_action_consumes_quota(wired) -> None:
    subject = SimpleNamespace(id="s1")

    response = subscription_routes.perform_action("theme_analysis", ActionRequest(), current_subject=subject)

    assert isinstance(response, DecisionResponse)
    assert response.allowed is True
    assert response.remaining == 0
    assert wired.counter_store.get_count("s1", "theme_analysis", "2026-01") == 1


def test_perform_action_denial_raises_forbidden(wired) -> None:
    subject = SimpleNamespace(id="s1")
    subscription_routes.perform_action("theme_analysis", None, current_subject=subject)

    with pytest.raises(HTTPException) as exc:
        subscription_routes.perform_action("theme_analysis", None, current_subject=subject)

    assert exc.value.status_code == 403
    assert exc.value.detail["error"] == "quota_exceeded"
    assert exc.value.detail["upgrade_to"] == "starter"


def test_perform_action_preview_returns_denial_without_raising(wired) -> None:
    subject = SimpleNamespace(id="s1")
    subscription_routes.perform_action("theme_analysis", None, current_subject=subject)

    response = subscription_routes.perform_action(
        "theme_analysis", ActionRequest(preview=True), current_subject=subject
    )

    assert response.allowed is False
    assert wired.counter_store.get_count("s1", "theme_analysis", "2026-01") == 1


def test_perform_action_capability_denied(wired) -> None:
    with pytest.raises(HTTPException) as exc:
        subscription_routes.perform_action("api_access", None, current_subject=SimpleNamespace(id="s1"))

    assert exc.value.status_code == 403
    assert exc.value.detail["error"] == "entitlement_required"


def test_perform_action_unknown_action_is_not_found(wired) -> None:
    with pytest.raises(HTTPException) as exc:
        subscription_routes.perform_action("time_travel", None, current_subject=SimpleNamespace(id="s1"))

    assert exc.value.status_code == 404


def test_perform_action_rate_limited(wired) -> None:
    subject = SimpleNamespace(id="s1")
    for _ in range(20):
        subscription_routes.perform_action("pdf_report", ActionRequest(preview=True), current_subject=subject)

    with pytest.raises(HTTPException) as exc:
        subscription_routes.perform_action("pdf_report", ActionRequest(preview=True), current_subject=subject)

    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "60"


def test_preview_plan_change_returns_quote(wired) -> None:
    wired.subscriptions.add("s1", PlanKey.AGENCY, billing_anchor=date(2026, 1, 1))
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for index in range(3):
        wired.live_resources.add(
            f"ws-{index}", "s1", LiveResourceType.WORKSPACE, created_at=base, last_used_at=base + timedelta(days=index)
        )

    response = subscription_routes.preview_plan_change(
        PlanChangeRequest(planKey="pro"), current_subject=SimpleNamespace(id="s1")
    )

    assert isinstance(response, PlanChangeQuoteResponse)
    assert response.requires_confirmation is True
    assert response.actions[0].resource_ids == ["ws-0", "ws-1"]
    assert "Actions:" in response.summary


def test_change_plan_requires_confirmation(wired) -> None:
    wired.subscriptions.add("s1", PlanKey.AGENCY, billing_anchor=date(2026, 1, 1))
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for index in range(2):
        wired.live_resources.add(f"ws-{index}", "s1", LiveResourceType.WORKSPACE, created_at=base)

    with pytest.raises(HTTPException) as exc:
        subscription_routes.change_plan(PlanChangeRequest(planKey="free"), current_subject=SimpleNamespace(id="s1"))
    assert exc.value.status_code == 409

    response = subscription_routes.change_plan(
        PlanChangeRequest(planKey="free", confirm=True), current_subject=SimpleNamespace(id="s1")
    )

    assert isinstance(response, PlanChangeResponse)
    assert response.committed is True
    assert wired.subscriptions.get_subscription("s1").plan_key == PlanKey.FREE


def test_change_plan_upgrades_subject_without_subscription(wired) -> None:
    response = subscription_routes.change_plan(PlanChangeRequest(planKey="pro"), current_subject=SimpleNamespace(id="newbie"))

    assert response.from_plan == PlanKey.FREE
    assert response.to_plan == PlanKey.PRO
    assert response.committed is True
    assert wired.subscriptions.get_subscription("newbie").plan_key == PlanKey.PRO
