"""Entitlements domain models and services."""

from .catalog import (
    ACTION_RULES,
    PLAN_CATALOG,
    cheapest_plan_with,
    compare_rank,
    get_action_rule,
    get_plan_definition,
    has_capability,
    iter_plans,
    limit_for,
    upgrade_benefits,
)
from .exceptions import ConfigurationError
from .live_resources import LiveResourceRepository, most_recently_used_first, select_excess
from .models import (
    UNLIMITED,
    Action,
    Decision,
    Limit,
    LiveResource,
    LiveResourceType,
    PlanCapabilities,
    PlanDefinition,
    PlanKey,
    PlanLimits,
    Subscription,
    SubscriptionStatus,
    UsageLine,
    UsageSummary,
)
from .service import EntitlementService, SubscriptionRepository

__all__ = [
    "ACTION_RULES",
    "PLAN_CATALOG",
    "cheapest_plan_with",
    "compare_rank",
    "get_action_rule",
    "get_plan_definition",
    "has_capability",
    "iter_plans",
    "limit_for",
    "upgrade_benefits",
    "ConfigurationError",
    "LiveResourceRepository",
    "most_recently_used_first",
    "select_excess",
    "UNLIMITED",
    "Action",
    "Decision",
    "Limit",
    "LiveResource",
    "LiveResourceType",
    "PlanCapabilities",
    "PlanDefinition",
    "PlanKey",
    "PlanLimits",
    "Subscription",
    "SubscriptionStatus",
    "UsageLine",
    "UsageSummary",
    "EntitlementService",
    "SubscriptionRepository",
]
