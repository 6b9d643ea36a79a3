"""API schemas for subscription endpoints."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..billing import PlanChangeDirection, PlanChangeQuote, PlanChangeResult, ProrationResult
from ..downgrades import DowngradeAction, DowngradeStepResult, StepOutcome
from ..entitlements import Decision, Limit, PlanKey, UsageLine, UsageSummary
from ..feature_gates import EntitlementContext
from ..limits import UNLIMITED, is_unlimited


def _remaining(used: Optional[int], limit: Optional[Limit]) -> Optional[Limit]:
    if limit is None or used is None:
        return None
    if is_unlimited(limit):
        return UNLIMITED
    return max(0, limit - used)


class ActionRequest(BaseModel):
    preview: bool = False

    model_config = ConfigDict(populate_by_name=True)


class DecisionResponse(BaseModel):
    action: str
    allowed: bool
    reason: Optional[str] = None
    upgrade_suggestion: Optional[PlanKey] = Field(alias="upgradeSuggestion", default=None)
    used: Optional[int] = None
    limit: Optional[Limit] = None
    remaining: Optional[Limit] = None
    period: Optional[str] = None
    degraded: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_decision(cls, decision: Decision) -> "DecisionResponse":
        return cls(
            action=decision.action,
            allowed=decision.allowed,
            reason=decision.reason,
            upgrade_suggestion=decision.upgrade_suggestion,
            used=decision.used,
            limit=decision.limit,
            remaining=_remaining(decision.used, decision.limit),
            period=decision.period_key,
            degraded=decision.degraded,
        )


class UsageLineResponse(BaseModel):
    action: str
    used: int
    limit: Limit
    remaining: Limit
    status: str
    percent: int

    @classmethod
    def from_line(cls, line: UsageLine, context: EntitlementContext) -> "UsageLineResponse":
        evaluation = context.usage_status(line.action, line.used)
        return cls(
            action=line.action.value,
            used=line.used,
            limit=line.limit,
            remaining=line.remaining,
            status=evaluation.level.value,
            percent=evaluation.percent,
        )


class SubscriptionOverviewResponse(BaseModel):
    plan: PlanKey
    display_name: str = Field(alias="displayName")
    price: Decimal
    trial_days: int = Field(alias="trialDays")
    period: str
    usage: List[UsageLineResponse] = Field(default_factory=list)
    features: Dict[str, Union[int, str, bool]] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_summary(cls, context: EntitlementContext, summary: UsageSummary) -> "SubscriptionOverviewResponse":
        plan = context.plan
        return cls(
            plan=plan.key,
            display_name=plan.display_name,
            price=plan.price,
            trial_days=plan.trial_days,
            period=summary.period_key,
            usage=[UsageLineResponse.from_line(line, context) for line in summary.lines],
            features=context.feature_flags,
        )


class PlanChangeRequest(BaseModel):
    plan_key: PlanKey = Field(alias="planKey")
    confirm: bool = False

    model_config = ConfigDict(populate_by_name=True)


class ProrationResponse(BaseModel):
    credit: Decimal
    charge: Decimal
    net: Decimal

    @classmethod
    def from_result(cls, result: ProrationResult) -> "ProrationResponse":
        return cls(credit=result.credit, charge=result.charge, net=result.net)


class DowngradeActionResponse(BaseModel):
    type: str
    count: int
    resource_ids: List[str] = Field(alias="resourceIds", default_factory=list)
    description: str

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_action(cls, action: DowngradeAction) -> "DowngradeActionResponse":
        return cls(
            type=action.type,
            count=action.count,
            resource_ids=list(action.resource_ids),
            description=action.description,
        )


class PlanChangeQuoteResponse(BaseModel):
    from_plan: PlanKey = Field(alias="fromPlan")
    to_plan: PlanKey = Field(alias="toPlan")
    direction: PlanChangeDirection
    period_start: date = Field(alias="periodStart")
    period_end: date = Field(alias="periodEnd")
    days_remaining: int = Field(alias="daysRemaining")
    proration: ProrationResponse
    warnings: List[str] = Field(default_factory=list)
    actions: List[DowngradeActionResponse] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    requires_confirmation: bool = Field(alias="requiresConfirmation", default=False)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_quote(cls, quote: PlanChangeQuote) -> "PlanChangeQuoteResponse":
        impact = quote.impact
        return cls(
            from_plan=quote.from_plan,
            to_plan=quote.to_plan,
            direction=quote.direction,
            period_start=quote.period.start,
            period_end=quote.period.end,
            days_remaining=quote.days_remaining,
            proration=ProrationResponse.from_result(quote.proration),
            warnings=[warning.message for warning in impact.warnings] if impact else [],
            actions=[DowngradeActionResponse.from_action(action) for action in impact.actions] if impact else [],
            benefits=list(quote.benefits),
            summary=impact.summary() if impact else None,
            requires_confirmation=quote.requires_confirmation,
        )


class StepResponse(BaseModel):
    step: str
    outcome: StepOutcome
    affected: int
    resource_ids: List[str] = Field(alias="resourceIds", default_factory=list)
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_step(cls, step: DowngradeStepResult) -> "StepResponse":
        return cls(
            step=step.step,
            outcome=step.outcome,
            affected=step.affected,
            resource_ids=list(step.resource_ids),
            error=step.error,
        )


class PlanChangeResponse(BaseModel):
    from_plan: PlanKey = Field(alias="fromPlan")
    to_plan: PlanKey = Field(alias="toPlan")
    direction: PlanChangeDirection
    committed: bool
    proration: ProrationResponse
    steps: List[StepResponse] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: PlanChangeResult) -> "PlanChangeResponse":
        return cls(
            from_plan=result.from_plan,
            to_plan=result.to_plan,
            direction=result.direction,
            committed=result.committed,
            proration=ProrationResponse.from_result(result.proration),
            steps=[StepResponse.from_step(step) for step in result.steps],
        )
