"""Metering configuration helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .models import FailurePolicy


@dataclass(frozen=True)
class MeteringConfig:
    """Failure policies and tuning for quota counters and rate limiters."""

    quota_failure_policy: FailurePolicy
    rate_limit_failure_policy: FailurePolicy
    rate_limit_ttl_seconds: int
    usage_warning_ratio: float


def _to_policy(value: Optional[str], *, default: FailurePolicy) -> FailurePolicy:
    if value is None or value.strip() == "":
        return default
    try:
        return FailurePolicy(value.strip().lower())
    except ValueError as exc:
        raise ValueError(f"Expected 'open' or 'closed', got {value!r}") from exc


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_metering_config(env: Optional[Mapping[str, str]] = None) -> MeteringConfig:
    """Load :class:`MeteringConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    quota_failure_policy = _to_policy(
        env_mapping.get("QUOTA_FAILURE_POLICY"), default=FailurePolicy.CLOSED
    )
    rate_limit_failure_policy = _to_policy(
        env_mapping.get("RATE_LIMIT_FAILURE_POLICY"), default=FailurePolicy.OPEN
    )
    rate_limit_ttl_seconds = max(0, _to_int(env_mapping.get("RATE_LIMIT_TTL_SECONDS"), default=300))
    usage_warning_ratio = _to_float(env_mapping.get("USAGE_WARNING_RATIO"), default=0.8)
    if not 0.0 < usage_warning_ratio <= 1.0:
        raise ValueError("USAGE_WARNING_RATIO must be within (0, 1]")

    return MeteringConfig(
        quota_failure_policy=quota_failure_policy,
        rate_limit_failure_policy=rate_limit_failure_policy,
        rate_limit_ttl_seconds=rate_limit_ttl_seconds,
        usage_warning_ratio=usage_warning_ratio,
    )
