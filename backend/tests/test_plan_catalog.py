from __future__ import annotations

from itertools import combinations

import pytest

from backend.app.entitlements import (
    UNLIMITED,
    ConfigurationError,
    PlanCapabilities,
    PlanKey,
    PlanLimits,
    cheapest_plan_with,
    compare_rank,
    get_plan_definition,
    has_capability,
    iter_plans,
    limit_for,
    upgrade_benefits,
)
from backend.app.limits import limit_exceeds


def test_plans_iterate_in_ascending_rank() -> None:
    keys = [plan.key for plan in iter_plans()]

    assert keys == [PlanKey.FREE, PlanKey.STARTER, PlanKey.PRO, PlanKey.AGENCY]


def test_higher_ranked_plans_never_offer_less() -> None:
    for lower, higher in combinations(list(iter_plans()), 2):
        assert compare_rank(lower, higher) == -1
        for name in PlanLimits.names():
            assert not limit_exceeds(limit_for(lower, name), limit_for(higher, name)), name
        for name in PlanCapabilities.names():
            if has_capability(lower, name):
                assert has_capability(higher, name), name


def test_compare_rank_ignores_price() -> None:
    free = get_plan_definition("free")

    assert compare_rank(free, free) == 0
    assert compare_rank(get_plan_definition(PlanKey.AGENCY), free) == 1


def test_limit_for_returns_catalog_values() -> None:
    starter = get_plan_definition(PlanKey.STARTER)

    assert limit_for(starter, "theme_analyses_per_month") == 5
    assert limit_for(starter, "recommendations") is UNLIMITED
    assert limit_for(get_plan_definition(PlanKey.AGENCY), "workspaces") == 10


def test_cheapest_plan_with_capability() -> None:
    assert cheapest_plan_with("pdf_report").key == PlanKey.STARTER
    assert cheapest_plan_with("code_fixes").key == PlanKey.PRO
    assert cheapest_plan_with("api_access").key == PlanKey.AGENCY
    assert cheapest_plan_with("mobile_performance").key == PlanKey.FREE


def test_cheapest_plan_with_resource_above_threshold() -> None:
    assert cheapest_plan_with(resource="theme_analyses_per_month", above=1).key == PlanKey.STARTER
    assert cheapest_plan_with(resource="theme_analyses_per_month", above=5).key == PlanKey.PRO
    assert cheapest_plan_with(resource="workspaces", above=1).key == PlanKey.AGENCY


def test_cheapest_plan_with_returns_none_when_nothing_qualifies() -> None:
    assert cheapest_plan_with(resource="workspaces", above=10) is None
    assert cheapest_plan_with(resource="history_days", above=UNLIMITED) is None


def test_cheapest_plan_with_requires_exactly_one_criterion() -> None:
    with pytest.raises(ValueError):
        cheapest_plan_with()
    with pytest.raises(ValueError):
        cheapest_plan_with("pdf_report", resource="workspaces")


@pytest.mark.parametrize(
    "call",
    [
        lambda: get_plan_definition("enterprise"),
        lambda: has_capability(get_plan_definition(PlanKey.PRO), "teleportation"),
        lambda: limit_for(get_plan_definition(PlanKey.PRO), "rockets_per_day"),
        lambda: cheapest_plan_with("teleportation"),
    ],
)
def test_unknown_names_are_configuration_errors(call) -> None:
    with pytest.raises(ConfigurationError):
        call()


def test_upgrade_benefits_lists_raised_limits_and_new_capabilities() -> None:
    benefits = upgrade_benefits(get_plan_definition(PlanKey.FREE), get_plan_definition(PlanKey.STARTER))

    assert "5 theme analyses per month (instead of 1)" in benefits
    assert "Unlimited recommendations" in benefits
    assert "PDF reports" in benefits
    assert "Code fixes" not in benefits


def test_to_flags_serializes_unlimited_sentinel() -> None:
    flags = get_plan_definition(PlanKey.AGENCY).to_flags()

    assert flags["history_days"] == "unlimited"
    assert flags["workspaces"] == 10
    assert flags["white_label"] is True
