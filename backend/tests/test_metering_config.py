from __future__ import annotations

import pytest

from backend.app.metering import FailurePolicy, load_metering_config


def test_defaults_fail_closed_for_quotas_and_open_for_rate_limits() -> None:
    config = load_metering_config({})

    assert config.quota_failure_policy is FailurePolicy.CLOSED
    assert config.rate_limit_failure_policy is FailurePolicy.OPEN
    assert config.rate_limit_ttl_seconds == 300
    assert config.usage_warning_ratio == pytest.approx(0.8)


def test_environment_overrides() -> None:
    config = load_metering_config(
        {
            "QUOTA_FAILURE_POLICY": "Open",
            "RATE_LIMIT_FAILURE_POLICY": "closed",
            "RATE_LIMIT_TTL_SECONDS": "-5",
            "USAGE_WARNING_RATIO": "0.9",
        }
    )

    assert config.quota_failure_policy is FailurePolicy.OPEN
    assert config.rate_limit_failure_policy is FailurePolicy.CLOSED
    assert config.rate_limit_ttl_seconds == 0
    assert config.usage_warning_ratio == pytest.approx(0.9)


@pytest.mark.parametrize(
    "env",
    [
        {"QUOTA_FAILURE_POLICY": "sometimes"},
        {"RATE_LIMIT_TTL_SECONDS": "soon"},
        {"USAGE_WARNING_RATIO": "1.5"},
        {"USAGE_WARNING_RATIO": "0"},
    ],
)
def test_invalid_values_raise(env) -> None:
    with pytest.raises(ValueError):
        load_metering_config(env)
