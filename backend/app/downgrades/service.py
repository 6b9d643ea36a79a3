"""Previews and executes the cascading effects of moving to a lower plan."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List

from ..entitlements.catalog import (
    CAPABILITY_LABELS,
    LIMIT_LABELS,
    LIVE_RESOURCE_LIMITS,
    describe_limit,
    has_capability,
    limit_for,
)
from ..entitlements.live_resources import LiveResourceRepository, select_excess
from ..entitlements.models import LiveResourceType, PlanCapabilities, PlanDefinition, PlanLimits
from ..entitlements.service import SubscriptionRepository
from ..limits import is_unlimited, limit_exceeds
from ..metering.exceptions import StoreUnavailableError
from .models import (
    DowngradeAction,
    DowngradeImpact,
    DowngradeStepResult,
    ImpactWarning,
    StepOutcome,
    WarningKind,
)

logger = logging.getLogger(__name__)

COMMIT_STEP = "commit_plan"


def _step_name(resource_type: LiveResourceType) -> str:
    return f"deactivate_{LIVE_RESOURCE_LIMITS[resource_type]}"


@dataclass
class DowngradeService:
    """Computes downgrade impact and applies it one idempotent step at a time.

    Workspaces are deactivated eagerly. Team members stay active and lose
    access lazily through :meth:`EntitlementService.can_use_live_resource`.
    """

    live_resource_repository: LiveResourceRepository
    subscription_repository: SubscriptionRepository
    lazy_resource_types: FrozenSet[LiveResourceType] = field(
        default_factory=lambda: frozenset({LiveResourceType.TEAM_MEMBER})
    )

    def plan_downgrade_impact(
        self,
        subject_id: str,
        from_plan: PlanDefinition,
        to_plan: PlanDefinition,
    ) -> DowngradeImpact:
        """Describe what ``subject_id`` would lose moving from ``from_plan`` to ``to_plan``.

        Nothing is mutated. Repeated calls against unchanged data agree.
        """

        if from_plan.key == to_plan.key:
            return DowngradeImpact(subject_id=subject_id, from_plan=from_plan.key, to_plan=to_plan.key)

        warnings: List[ImpactWarning] = []
        for name in PlanCapabilities.names():
            if has_capability(from_plan, name) and not has_capability(to_plan, name):
                warnings.append(
                    ImpactWarning(
                        kind=WarningKind.CAPABILITY_LOSS,
                        name=name,
                        message=f"{CAPABILITY_LABELS[name]} will no longer be available.",
                    )
                )

        live_limits = set(LIVE_RESOURCE_LIMITS.values())
        for name in PlanLimits.names():
            if name in live_limits:
                continue
            before = limit_for(from_plan, name)
            after = limit_for(to_plan, name)
            if is_unlimited(after) or not limit_exceeds(before, after):
                continue
            warnings.append(
                ImpactWarning(
                    kind=WarningKind.LIMIT_REDUCTION,
                    name=name,
                    message=(
                        f"{LIMIT_LABELS[name].capitalize()}: {describe_limit(after)}"
                        f" instead of {describe_limit(before)}."
                    ),
                )
            )

        actions: List[DowngradeAction] = []
        for resource_type, limit_name in LIVE_RESOURCE_LIMITS.items():
            active = self.live_resource_repository.list_active(subject_id, resource_type)
            excess = select_excess(active, limit_for(to_plan, limit_name))
            if not excess:
                continue
            if resource_type in self.lazy_resource_types:
                description = f"{len(excess)} {LIMIT_LABELS[limit_name]} will lose access"
            else:
                description = f"{len(excess)} {LIMIT_LABELS[limit_name]} will be deactivated"
            actions.append(
                DowngradeAction(
                    type=_step_name(resource_type),
                    resource_type=resource_type,
                    count=len(excess),
                    resource_ids=tuple(resource.id for resource in excess),
                    description=description,
                )
            )

        return DowngradeImpact(
            subject_id=subject_id,
            from_plan=from_plan.key,
            to_plan=to_plan.key,
            warnings=tuple(warnings),
            actions=tuple(actions),
        )

    def enforce_resource_limit(
        self,
        subject_id: str,
        to_plan: PlanDefinition,
        resource_type: LiveResourceType | str,
    ) -> DowngradeStepResult:
        """Bring one live resource type within ``to_plan``'s limit.

        The excess is recomputed from the current active rows, so re-running a
        step that already converged deactivates nothing.
        """

        resource_type = LiveResourceType(resource_type)
        step = _step_name(resource_type)
        limit = limit_for(to_plan, LIVE_RESOURCE_LIMITS[resource_type])

        try:
            if resource_type in self.lazy_resource_types:
                active = self.live_resource_repository.list_active(subject_id, resource_type)
                excess = select_excess(active, limit)
                return DowngradeStepResult(
                    step=step,
                    outcome=StepOutcome.LAZILY_ENFORCED,
                    affected=len(excess),
                    resource_ids=tuple(resource.id for resource in excess),
                )

            if is_unlimited(limit):
                return DowngradeStepResult(step=step, outcome=StepOutcome.UNCHANGED)

            deactivated = self.live_resource_repository.deactivate_excess(
                subject_id, resource_type, int(limit)
            )
        except StoreUnavailableError as exc:
            logger.warning("Downgrade step %s failed for subject=%s: %s", step, subject_id, exc)
            return DowngradeStepResult(step=step, outcome=StepOutcome.FAILED, error=str(exc))

        if not deactivated:
            return DowngradeStepResult(step=step, outcome=StepOutcome.UNCHANGED)

        logger.info(
            "Deactivated %s %s for subject=%s: %s",
            len(deactivated),
            resource_type.value,
            subject_id,
            ", ".join(deactivated),
        )
        return DowngradeStepResult(
            step=step,
            outcome=StepOutcome.DEACTIVATED,
            affected=len(deactivated),
            resource_ids=tuple(deactivated),
        )

    def execute_downgrade(self, subject_id: str, to_plan: PlanDefinition) -> List[DowngradeStepResult]:
        """Apply every resource step, then commit the plan if all of them succeeded."""

        results = [
            self.enforce_resource_limit(subject_id, to_plan, resource_type)
            for resource_type in LIVE_RESOURCE_LIMITS
        ]

        if not all(result.succeeded for result in results):
            logger.warning(
                "Downgrade of subject=%s to %s left on previous plan after failed steps",
                subject_id,
                to_plan.key.value,
            )
            results.append(
                DowngradeStepResult(
                    step=COMMIT_STEP,
                    outcome=StepOutcome.SKIPPED,
                    error="A resource step failed; the plan was not changed",
                )
            )
            return results

        try:
            self.subscription_repository.update_plan(subject_id, to_plan.key)
        except StoreUnavailableError as exc:
            logger.warning("Committing plan %s for subject=%s failed: %s", to_plan.key.value, subject_id, exc)
            results.append(DowngradeStepResult(step=COMMIT_STEP, outcome=StepOutcome.FAILED, error=str(exc)))
            return results

        logger.info("Subject %s moved to plan %s", subject_id, to_plan.key.value)
        results.append(DowngradeStepResult(step=COMMIT_STEP, outcome=StepOutcome.COMMITTED))
        return results


__all__ = ["COMMIT_STEP", "DowngradeService"]
