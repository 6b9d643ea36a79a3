"""Application wiring for entitlement checks, metering and downgrades."""
from __future__ import annotations

from functools import lru_cache

from ..billing.repository import PostgresSubscriptionRepository
from ..downgrades import DowngradeService
from ..downgrades.repository import PostgresLiveResourceRepository
from ..entitlements import EntitlementService
from ..metering import MeteringConfig, PostgresCounterStore, RateLimiter, load_metering_config


@lru_cache(maxsize=1)
def get_metering_config() -> MeteringConfig:
    return load_metering_config()


@lru_cache(maxsize=1)
def get_entitlement_service() -> EntitlementService:
    config = get_metering_config()
    return EntitlementService(
        counter_store=PostgresCounterStore(),
        subscription_repository=PostgresSubscriptionRepository(),
        live_resource_repository=PostgresLiveResourceRepository(),
        quota_failure_policy=config.quota_failure_policy,
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    config = get_metering_config()
    return RateLimiter(
        PostgresCounterStore(),
        failure_policy=config.rate_limit_failure_policy,
        ttl_seconds=config.rate_limit_ttl_seconds,
    )


@lru_cache(maxsize=1)
def get_downgrade_service() -> DowngradeService:
    return DowngradeService(
        live_resource_repository=PostgresLiveResourceRepository(),
        subscription_repository=PostgresSubscriptionRepository(),
    )


__all__ = [
    "get_downgrade_service",
    "get_entitlement_service",
    "get_metering_config",
    "get_rate_limiter",
]
