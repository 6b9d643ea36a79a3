"""Feature gating utilities coordinating entitlement enforcement."""
from .context import EntitlementContext
from .enforcement import require_decision, require_rate_limit
from .exceptions import FeatureGateError
from .quota import UsageLevel, UsageStatus, evaluate_usage_status

__all__ = [
    "EntitlementContext",
    "FeatureGateError",
    "UsageLevel",
    "UsageStatus",
    "evaluate_usage_status",
    "require_decision",
    "require_rate_limit",
]
