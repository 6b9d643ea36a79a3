"""Convenience wrapper around a resolved plan for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union

from ..entitlements.catalog import get_action_rule, has_capability, limit_for
from ..entitlements.models import Action, PlanDefinition, PlanKey
from ..limits import Limit
from .quota import UsageStatus, evaluate_usage_status


@dataclass(frozen=True)
class EntitlementContext:
    """A subject's plan together with the usage warning threshold."""

    plan: PlanDefinition
    warn_ratio: float = 0.8

    @property
    def plan_key(self) -> PlanKey:
        return self.plan.key

    @property
    def feature_flags(self) -> Dict[str, Union[int, str, bool]]:
        return self.plan.to_flags()

    def has(self, flag: str) -> bool:
        return has_capability(self.plan, flag)

    def limit(self, resource: str) -> Limit:
        return limit_for(self.plan, resource)

    def usage_status(self, action: Action | str, used: int) -> UsageStatus:
        """Classify ``used`` against the monthly limit behind a countable action."""

        rule = get_action_rule(action)
        if not rule.is_countable:
            raise ValueError(f"{Action(action).value} is not a metered action")
        return evaluate_usage_status(used, self.limit(rule.monthly_limit), self.warn_ratio)
