"""Usage counters, period keys and rate limiting."""

from .exceptions import StoreUnavailableError
from .models import FailurePolicy, IncrementResult, RateLimitResult
from .periods import Granularity, period_end, period_key, period_start
from .store import CounterStore, InMemoryCounterStore
from .repository import PostgresCounterStore
from .config import MeteringConfig, load_metering_config
from .rate_limit import API_CALLS_RESOURCE, RateLimiter

__all__ = [
    "StoreUnavailableError",
    "FailurePolicy",
    "IncrementResult",
    "RateLimitResult",
    "Granularity",
    "period_end",
    "period_key",
    "period_start",
    "CounterStore",
    "InMemoryCounterStore",
    "PostgresCounterStore",
    "MeteringConfig",
    "load_metering_config",
    "API_CALLS_RESOURCE",
    "RateLimiter",
]
