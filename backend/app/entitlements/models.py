"""Domain models for plans, subscriptions and entitlement decisions."""
from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..limits import UNLIMITED, Limit, Unlimited, is_unlimited, limit_allows, limit_exceeds


class PlanKey(str, Enum):
    """Canonical identifiers for subscription plans."""

    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    AGENCY = "agency"


class SubscriptionStatus(str, Enum):
    """Lifecycle state for subscriptions."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class Action(str, Enum):
    """Actions a subject can request that are gated by its plan."""

    THEME_ANALYSIS = "theme_analysis"
    PERFORMANCE_TEST = "performance_test"
    DESKTOP_PERFORMANCE = "desktop_performance"
    SECTION_DETAILS = "section_details"
    PDF_REPORT = "pdf_report"
    PDF_WHITE_LABEL = "pdf_white_label"
    PDF_CUSTOM_LOGO = "pdf_custom_logo"
    CODE_FIXES = "code_fixes"
    SCORE_SIMULATOR = "score_simulator"
    COMPETITOR_BENCHMARK = "competitor_benchmark"
    API_ACCESS = "api_access"
    WHITE_LABEL = "white_label"
    BATCH_ANALYSIS = "batch_analysis"
    CLIENT_DASHBOARD = "client_dashboard"


class LiveResourceType(str, Enum):
    """Resources held by a subject that are counted, not metered per period."""

    WORKSPACE = "workspace"
    TEAM_MEMBER = "team_member"


@dataclass(frozen=True)
class PlanLimits:
    """Named numeric limits of a plan. ``UNLIMITED`` means no ceiling."""

    theme_analyses_per_month: Limit = 1
    performance_tests_per_month: Limit = 1
    recommendations: Limit = 3
    history_days: Limit = 0
    workspaces: Limit = 1
    team_members: Limit = 1
    analyses_per_day: Limit = 3
    performance_tests_per_day: Limit = 5
    api_calls_per_minute: Limit = 20

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(field.name for field in fields(cls))


@dataclass(frozen=True)
class PlanCapabilities:
    """Named boolean capability flags of a plan."""

    mobile_performance: bool = True
    desktop_performance: bool = False
    section_details: bool = False
    pdf_report: bool = False
    pdf_white_label: bool = False
    pdf_custom_logo: bool = False
    code_fixes: bool = False
    score_simulator: bool = False
    competitor_benchmark: bool = False
    api_access: bool = False
    white_label: bool = False
    batch_analysis: bool = False
    client_dashboard: bool = False
    onboarding_call: bool = False

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(field.name for field in fields(cls))

    def enabled(self) -> tuple[str, ...]:
        return tuple(name for name in self.names() if getattr(self, name))


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a subscription tier. Loaded as configuration, never mutated."""

    key: PlanKey
    display_name: str
    rank: int
    price: Decimal
    trial_days: int
    limits: PlanLimits
    capabilities: PlanCapabilities

    def to_flags(self) -> Dict[str, Union[int, str, bool]]:
        """Serialize limits and capabilities to a flat mapping."""

        flags: Dict[str, Union[int, str, bool]] = {}
        for name in PlanLimits.names():
            value = getattr(self.limits, name)
            flags[name] = value.value if is_unlimited(value) else value
        for name in PlanCapabilities.names():
            flags[name] = getattr(self.capabilities, name)
        return flags


class Subscription(BaseModel):
    """A subject's subscription. ``plan_key`` is the only field plan changes touch."""

    subject_id: str
    plan_key: PlanKey = PlanKey.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    billing_anchor: date

    model_config = ConfigDict(frozen=True)

    @property
    def is_entitled(self) -> bool:
        return self.status in {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING}


class Decision(BaseModel):
    """Outcome of an entitlement check."""

    action: str
    allowed: bool
    reason: Optional[str] = None
    upgrade_suggestion: Optional[PlanKey] = None
    used: Optional[int] = None
    limit: Optional[Limit] = None
    period_key: Optional[str] = None
    degraded: bool = Field(
        default=False,
        description="Set when the decision was taken without reaching the counter store.",
    )

    model_config = ConfigDict(frozen=True)


class UsageLine(BaseModel):
    """Current-period usage of one countable resource."""

    action: Action
    used: int
    limit: Limit
    remaining: Limit

    model_config = ConfigDict(frozen=True)


class UsageSummary(BaseModel):
    """Current-period usage of every countable resource for a subject."""

    subject_id: str
    plan: PlanKey
    period_key: str
    lines: tuple[UsageLine, ...] = ()

    model_config = ConfigDict(frozen=True)


class LiveResource(BaseModel):
    """A workspace or team member currently held by a subject."""

    id: str
    owner_id: str
    resource_type: LiveResourceType
    is_active: bool = True
    last_used_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(frozen=True)
