"""
Service layer infrastructure - resilience patterns for external feeds.

Provides:
- CircuitBreaker: Stops calling a failing feed for a cool-down period
- RetryPolicy: Bounded retries with backoff for transient failures
- FreshnessTracker: Last-success bookkeeping and staleness verdicts
- CacheManager: One immutable snapshot slot per feed
- ServiceClient: Shared HTTP client plus the registries above
"""

from skywave.services.errors import (
    ServiceError,
    TransientServiceError,
    RequestTimeoutError,
    TransportError,
    ExternalApiError,
    InvalidApiResponseError,
    CircuitOpenError,
)
from skywave.services.cache import CacheManager, CacheSlot, CacheStats
from skywave.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from skywave.services.retry import (
    RetryConfig,
    RetryPolicy,
    calculate_delay,
    retry_with_backoff,
    should_retry,
)
from skywave.services.freshness import FreshnessTracker
from skywave.services.client import FetchResult, ServiceClient, get_service_client

__all__ = [
    # Errors
    "ServiceError",
    "TransientServiceError",
    "RequestTimeoutError",
    "TransportError",
    "ExternalApiError",
    "InvalidApiResponseError",
    "CircuitOpenError",
    # Cache
    "CacheManager",
    "CacheSlot",
    "CacheStats",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    # Retry
    "RetryConfig",
    "RetryPolicy",
    "calculate_delay",
    "retry_with_backoff",
    "should_retry",
    # Freshness
    "FreshnessTracker",
    # Client
    "FetchResult",
    "ServiceClient",
    "get_service_client",
]
