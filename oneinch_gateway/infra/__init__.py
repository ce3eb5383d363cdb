"""
Infrastructure layer for the 1inch gateway

Provides:
- RequestPacer: minimum-interval gate for outbound requests
- TTLCache: keyed cache with expiry and single-writer refresh
- execute_with_retry: backoff policy for 429 / 5xx / transport failures
"""

from .pacing import RequestPacer
from .cache import TTLCache, CacheEntry
from .retry import (
    RetryPolicy,
    RetryDecision,
    classify_error,
    execute_with_retry,
    CorrelationContext,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "RequestPacer",
    "TTLCache",
    "CacheEntry",
    "RetryPolicy",
    "RetryDecision",
    "classify_error",
    "execute_with_retry",
    "CorrelationContext",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
