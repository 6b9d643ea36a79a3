"""Downgrade impact analysis and execution."""

from .models import (
    DowngradeAction,
    DowngradeImpact,
    DowngradeStepResult,
    ImpactWarning,
    StepOutcome,
    WarningKind,
)
from .service import COMMIT_STEP, DowngradeService

__all__ = [
    "DowngradeAction",
    "DowngradeImpact",
    "DowngradeStepResult",
    "ImpactWarning",
    "StepOutcome",
    "WarningKind",
    "COMMIT_STEP",
    "DowngradeService",
]
