"""Errors raised by the plan catalog and entitlement evaluation."""
from __future__ import annotations


class ConfigurationError(LookupError):
    """An unknown plan, capability, resource or action was referenced.

    This indicates a deployment or configuration bug rather than a user
    condition, so it is never turned into a denial decision.
    """
