"""Value objects describing downgrade impact and execution."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..entitlements.models import LiveResourceType, PlanKey


class WarningKind(str, Enum):
    CAPABILITY_LOSS = "capability_loss"
    LIMIT_REDUCTION = "limit_reduction"


class ImpactWarning(BaseModel):
    kind: WarningKind
    name: str
    message: str

    model_config = ConfigDict(frozen=True)


class DowngradeAction(BaseModel):
    """A cascading change the target plan forces on live resources."""

    type: str
    resource_type: LiveResourceType
    count: int
    resource_ids: tuple[str, ...] = ()
    description: str

    model_config = ConfigDict(frozen=True)


class DowngradeImpact(BaseModel):
    """Preview of what moving from one plan to a lower one would change."""

    subject_id: str
    from_plan: PlanKey
    to_plan: PlanKey
    warnings: tuple[ImpactWarning, ...] = ()
    actions: tuple[DowngradeAction, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def is_empty(self) -> bool:
        return not self.warnings and not self.actions

    def summary(self) -> str:
        """Return a one-line human readable description of the impact."""

        if self.is_empty:
            return "No restrictions apply to this downgrade."
        parts = []
        if self.warnings:
            parts.append("Notes: " + " ".join(warning.message for warning in self.warnings))
        if self.actions:
            parts.append("Actions: " + ", ".join(action.description for action in self.actions))
        return " | ".join(parts)


class StepOutcome(str, Enum):
    DEACTIVATED = "deactivated"
    UNCHANGED = "unchanged"
    LAZILY_ENFORCED = "lazily_enforced"
    COMMITTED = "committed"
    FAILED = "failed"
    SKIPPED = "skipped"


class DowngradeStepResult(BaseModel):
    """Result of one independently retryable downgrade step."""

    step: str
    outcome: StepOutcome
    affected: int = 0
    resource_ids: tuple[str, ...] = ()
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def succeeded(self) -> bool:
        return self.outcome not in {StepOutcome.FAILED, StepOutcome.SKIPPED}
