"""API routes exposing plans, usage and plan changes."""
from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, status

from ... import app_context
from ..entitlements import Action, ConfigurationError, PlanDefinition, get_action_rule
from ..feature_gates import EntitlementContext, FeatureGateError, require_decision, require_rate_limit
from ..metering import StoreUnavailableError
from ..schemas.subscription import (
    ActionRequest,
    DecisionResponse,
    PlanChangeQuoteResponse,
    PlanChangeRequest,
    PlanChangeResponse,
    SubscriptionOverviewResponse,
)
from ..services.billing import get_plan_change_service
from ..services.entitlements import get_entitlement_service, get_metering_config, get_rate_limiter

logger = logging.getLogger(__name__)

_SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")


def _get_current_subject(
    session_token: Optional[str] = Cookie(None, alias=_SESSION_COOKIE_NAME),
):
    return app_context.get_current_subject(session_token=session_token)


router = APIRouter(prefix="/api/subscription", tags=["subscription"])


def _store_unavailable(exc: StoreUnavailableError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


def _enforce_api_rate_limit(plan: PlanDefinition, subject_id: str) -> None:
    result = get_rate_limiter().check_api_calls(plan, subject_id)
    try:
        require_rate_limit(result)
    except FeatureGateError as exc:
        raise exc.to_http_exception() from exc


@router.get("", response_model=SubscriptionOverviewResponse)
def get_subscription(*, current_subject=Depends(_get_current_subject)) -> SubscriptionOverviewResponse:
    service = get_entitlement_service()
    subject_id = str(current_subject.id)
    try:
        plan = service.resolve_plan(subject_id)
        summary = service.usage_summary(plan, subject_id)
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc
    context = EntitlementContext(plan, warn_ratio=get_metering_config().usage_warning_ratio)
    return SubscriptionOverviewResponse.from_summary(context, summary)


@router.post("/actions/{action}", response_model=DecisionResponse)
def perform_action(
    action: str,
    payload: Optional[ActionRequest] = None,
    *,
    current_subject=Depends(_get_current_subject),
) -> DecisionResponse:
    request = payload or ActionRequest()
    service = get_entitlement_service()
    subject_id = str(current_subject.id)

    try:
        rule = get_action_rule(action)
        plan = service.resolve_plan(subject_id)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc

    _enforce_api_rate_limit(plan, subject_id)

    try:
        if rule.daily_limit is not None and not request.preview:
            daily = get_rate_limiter().check_daily_action(plan, Action(action), subject_id)
            require_rate_limit(daily)
        decision = service.can_perform(plan, action, subject_id, preview=request.preview)
        if not request.preview:
            require_decision(decision)
    except FeatureGateError as exc:
        logger.info("Action %s refused for subject=%s: %s", action, subject_id, exc.code)
        raise exc.to_http_exception() from exc

    return DecisionResponse.from_decision(decision)


@router.post("/change/preview", response_model=PlanChangeQuoteResponse)
def preview_plan_change(
    payload: PlanChangeRequest,
    *,
    current_subject=Depends(_get_current_subject),
) -> PlanChangeQuoteResponse:
    service = get_plan_change_service()
    try:
        quote = service.quote_plan_change(str(current_subject.id), payload.plan_key)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc
    return PlanChangeQuoteResponse.from_quote(quote)


@router.post("/change", response_model=PlanChangeResponse)
def change_plan(
    payload: PlanChangeRequest,
    *,
    current_subject=Depends(_get_current_subject),
) -> PlanChangeResponse:
    service = get_plan_change_service()
    try:
        result = service.change_plan(str(current_subject.id), payload.plan_key, confirm=payload.confirm)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc
    return PlanChangeResponse.from_result(result)
