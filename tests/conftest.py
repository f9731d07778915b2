"""Shared fixtures for the skywave test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from skywave.services.circuit_breaker import CircuitBreakerConfig
from skywave.services.client import ServiceClient
from skywave.services.retry import RetryConfig

FIXED_NOW = datetime(2025, 8, 12, 3, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = FIXED_NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_client(clock=None, transport=None, max_attempts: int = 3) -> ServiceClient:
    """ServiceClient with default breaker settings and zero retry backoff."""
    return ServiceClient(
        default_timeout=5.0,
        user_agent="skywave-tests",
        transport=transport,
        breaker_config=CircuitBreakerConfig(),
        retry_config=RetryConfig(max_attempts=max_attempts, base_delay=0.0, jitter=False),
        clock=clock or FakeClock(),
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(clock) -> ServiceClient:
    return make_client(clock)
