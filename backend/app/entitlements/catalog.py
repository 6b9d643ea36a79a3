"""Static catalog of subscription tiers and pure lookups over it."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from .exceptions import ConfigurationError
from .models import (
    UNLIMITED,
    Action,
    Limit,
    LiveResourceType,
    PlanCapabilities,
    PlanDefinition,
    PlanKey,
    PlanLimits,
    is_unlimited,
    limit_exceeds,
)


@dataclass(frozen=True)
class ActionRule:
    """Describes how an action is gated: by a capability flag or a monthly limit."""

    capability: Optional[str] = None
    monthly_limit: Optional[str] = None
    daily_limit: Optional[str] = None

    @property
    def is_countable(self) -> bool:
        return self.monthly_limit is not None


PLAN_CATALOG: Dict[PlanKey, PlanDefinition] = {
    PlanKey.FREE: PlanDefinition(
        key=PlanKey.FREE,
        display_name="Free",
        rank=0,
        price=Decimal("0"),
        trial_days=0,
        limits=PlanLimits(),
        capabilities=PlanCapabilities(),
    ),
    PlanKey.STARTER: PlanDefinition(
        key=PlanKey.STARTER,
        display_name="Starter",
        rank=1,
        price=Decimal("29"),
        trial_days=7,
        limits=PlanLimits(
            theme_analyses_per_month=5,
            performance_tests_per_month=10,
            recommendations=UNLIMITED,
            history_days=30,
            analyses_per_day=10,
            performance_tests_per_day=20,
            api_calls_per_minute=60,
        ),
        capabilities=PlanCapabilities(
            desktop_performance=True,
            section_details=True,
            pdf_report=True,
        ),
    ),
    PlanKey.PRO: PlanDefinition(
        key=PlanKey.PRO,
        display_name="Pro",
        rank=2,
        price=Decimal("79"),
        trial_days=7,
        limits=PlanLimits(
            theme_analyses_per_month=UNLIMITED,
            performance_tests_per_month=UNLIMITED,
            recommendations=UNLIMITED,
            history_days=90,
            analyses_per_day=50,
            performance_tests_per_day=100,
            api_calls_per_minute=120,
        ),
        capabilities=PlanCapabilities(
            desktop_performance=True,
            section_details=True,
            pdf_report=True,
            pdf_white_label=True,
            code_fixes=True,
            score_simulator=True,
            competitor_benchmark=True,
        ),
    ),
    PlanKey.AGENCY: PlanDefinition(
        key=PlanKey.AGENCY,
        display_name="Agency",
        rank=3,
        price=Decimal("249"),
        trial_days=7,
        limits=PlanLimits(
            theme_analyses_per_month=UNLIMITED,
            performance_tests_per_month=UNLIMITED,
            recommendations=UNLIMITED,
            history_days=UNLIMITED,
            workspaces=10,
            team_members=5,
            analyses_per_day=UNLIMITED,
            performance_tests_per_day=UNLIMITED,
            api_calls_per_minute=300,
        ),
        capabilities=PlanCapabilities(
            desktop_performance=True,
            section_details=True,
            pdf_report=True,
            pdf_white_label=True,
            pdf_custom_logo=True,
            code_fixes=True,
            score_simulator=True,
            competitor_benchmark=True,
            api_access=True,
            white_label=True,
            batch_analysis=True,
            client_dashboard=True,
            onboarding_call=True,
        ),
    ),
}

ACTION_RULES: Dict[Action, ActionRule] = {
    Action.THEME_ANALYSIS: ActionRule(
        monthly_limit="theme_analyses_per_month",
        daily_limit="analyses_per_day",
    ),
    Action.PERFORMANCE_TEST: ActionRule(
        monthly_limit="performance_tests_per_month",
        daily_limit="performance_tests_per_day",
    ),
    Action.DESKTOP_PERFORMANCE: ActionRule(capability="desktop_performance"),
    Action.SECTION_DETAILS: ActionRule(capability="section_details"),
    Action.PDF_REPORT: ActionRule(capability="pdf_report"),
    Action.PDF_WHITE_LABEL: ActionRule(capability="pdf_white_label"),
    Action.PDF_CUSTOM_LOGO: ActionRule(capability="pdf_custom_logo"),
    Action.CODE_FIXES: ActionRule(capability="code_fixes"),
    Action.SCORE_SIMULATOR: ActionRule(capability="score_simulator"),
    Action.COMPETITOR_BENCHMARK: ActionRule(capability="competitor_benchmark"),
    Action.API_ACCESS: ActionRule(capability="api_access"),
    Action.WHITE_LABEL: ActionRule(capability="white_label"),
    Action.BATCH_ANALYSIS: ActionRule(capability="batch_analysis"),
    Action.CLIENT_DASHBOARD: ActionRule(capability="client_dashboard"),
}

LIVE_RESOURCE_LIMITS: Dict[LiveResourceType, str] = {
    LiveResourceType.WORKSPACE: "workspaces",
    LiveResourceType.TEAM_MEMBER: "team_members",
}

LIMIT_LABELS: Dict[str, str] = {
    "theme_analyses_per_month": "theme analyses per month",
    "performance_tests_per_month": "performance tests per month",
    "recommendations": "recommendations",
    "history_days": "days of history",
    "workspaces": "workspaces",
    "team_members": "team members",
    "analyses_per_day": "analyses per day",
    "performance_tests_per_day": "performance tests per day",
    "api_calls_per_minute": "API calls per minute",
}

CAPABILITY_LABELS: Dict[str, str] = {
    "mobile_performance": "Mobile performance tests",
    "desktop_performance": "Desktop performance tests",
    "section_details": "Detailed section analysis",
    "pdf_report": "PDF reports",
    "pdf_white_label": "White-label PDF reports",
    "pdf_custom_logo": "Custom logo on PDF reports",
    "code_fixes": "Code fixes",
    "score_simulator": "Score simulator",
    "competitor_benchmark": "Competitor benchmarking",
    "api_access": "API access",
    "white_label": "White-label branding",
    "batch_analysis": "Batch analysis",
    "client_dashboard": "Client dashboard",
    "onboarding_call": "Onboarding call",
}


def get_plan_definition(plan_key: PlanKey | str) -> PlanDefinition:
    """Return a plan definition, raising if unsupported."""

    try:
        return PLAN_CATALOG[PlanKey(plan_key)]
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(f"Unknown plan key: {plan_key}") from exc


def get_action_rule(action: Action | str) -> ActionRule:
    try:
        return ACTION_RULES[Action(action)]
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(f"Unknown action: {action}") from exc


def iter_plans() -> Iterator[PlanDefinition]:
    """Yield plans in ascending rank order."""

    return iter(sorted(PLAN_CATALOG.values(), key=lambda plan: plan.rank))


def compare_rank(a: PlanDefinition, b: PlanDefinition) -> int:
    """Ordinal comparison of two plans, independent of price."""

    if a.rank < b.rank:
        return -1
    if a.rank > b.rank:
        return 1
    return 0


def has_capability(plan: PlanDefinition, flag: str) -> bool:
    if flag not in PlanCapabilities.names():
        raise ConfigurationError(f"Unknown capability: {flag}")
    return bool(getattr(plan.capabilities, flag))


def limit_for(plan: PlanDefinition, resource: str) -> Limit:
    if resource not in PlanLimits.names():
        raise ConfigurationError(f"Unknown resource: {resource}")
    return getattr(plan.limits, resource)


def cheapest_plan_with(
    capability: Optional[str] = None,
    *,
    resource: Optional[str] = None,
    above: Optional[Limit] = None,
) -> Optional[PlanDefinition]:
    """Return the lowest-ranked plan satisfying the requirement, if any.

    Either ``capability`` names a flag that must be enabled, or ``resource``
    names a numeric limit that must be strictly greater than ``above``
    (any non-zero limit when ``above`` is omitted).
    """

    if (capability is None) == (resource is None):
        raise ValueError("Exactly one of capability or resource is required")

    for plan in iter_plans():
        if capability is not None:
            if has_capability(plan, capability):
                return plan
            continue
        threshold = 0 if above is None else above
        if limit_exceeds(limit_for(plan, resource), threshold):
            return plan
    return None


def describe_limit(limit: Limit) -> str:
    return "unlimited" if is_unlimited(limit) else str(limit)


def upgrade_benefits(from_plan: PlanDefinition, to_plan: PlanDefinition) -> List[str]:
    """List what ``to_plan`` adds on top of ``from_plan``."""

    benefits: List[str] = []
    for name in PlanLimits.names():
        before = limit_for(from_plan, name)
        after = limit_for(to_plan, name)
        if not limit_exceeds(after, before):
            continue
        label = LIMIT_LABELS[name]
        if is_unlimited(after):
            benefits.append(f"Unlimited {label}")
        else:
            benefits.append(f"{after} {label} (instead of {before})")
    for name in PlanCapabilities.names():
        if has_capability(to_plan, name) and not has_capability(from_plan, name):
            benefits.append(CAPABILITY_LABELS[name])
    return benefits
