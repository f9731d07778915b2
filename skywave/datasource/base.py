"""
Base data source: the resilient fetch pipeline every feed adapter shares.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, TypeVar

from loguru import logger
from pydantic import ValidationError

from skywave.services.client import FetchResult, ServiceClient
from skywave.services.errors import (
    CircuitOpenError,
    InvalidApiResponseError,
    RequestTimeoutError,
)
from skywave.services.freshness import FreshnessTracker
from skywave.services.retry import RetryPolicy
from skywave.settings import global_settings

T = TypeVar("T")


class ResilientDataSource(ABC, Generic[T]):
    """
    Abstract base class for all feeds.

    Subclasses supply only the wire-specific parts:
    - `do_fetch()` returns a validated payload or raises
    - `get_default_value()` is served when no real data was ever obtained

    `fetch()` wraps `do_fetch()` with a per-attempt timeout, bounded retries
    and the feed's circuit breaker. It never raises: failures fall back to
    the last good value in the feed's cache slot, or to the default.

    Class attributes:
        SERVICE_ID: client name, also keys the breaker
        SOURCE_LABEL: human-readable provider name
        CACHE_SLOT: cache slot name (defaults to SERVICE_ID)
        REFRESH_INTERVAL: expected time between scheduled fetches
        TIMEOUT: per-attempt timeout in seconds (defaults to HTTP_TIMEOUT)
        MAX_RESPONSE_BYTES: larger payloads are rejected as invalid
    """

    SERVICE_ID: str
    SOURCE_LABEL: str
    CACHE_SLOT: str | None = None
    REFRESH_INTERVAL: timedelta = timedelta(minutes=5)
    TIMEOUT: float | None = None
    MAX_RESPONSE_BYTES: int = 1_000_000

    def __init__(
        self,
        client: ServiceClient | None = None,
        refresh_interval: timedelta | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        from skywave.services.client import get_service_client

        self.client = client or get_service_client()
        self._clock = clock or self.client.clock
        self.refresh_interval = refresh_interval or self.REFRESH_INTERVAL
        self.timeout = timeout or self.TIMEOUT or global_settings.http_timeout

        self.freshness = FreshnessTracker(self.refresh_interval, clock=self._clock)
        self.breaker = self.client.circuit_breakers.get(self.service_id)
        self.retry = RetryPolicy(self.client.retry_config, name=self.service_id)
        self._serving_stale = False

    @property
    def service_id(self) -> str:
        """Unique identifier for this feed."""
        return self.SERVICE_ID

    @property
    def source_label(self) -> str:
        return self.SOURCE_LABEL

    @property
    def cache_slot(self) -> str:
        return self.CACHE_SLOT or self.SERVICE_ID

    @abstractmethod
    async def do_fetch(self) -> T:
        """Fetch and parse one payload from the upstream feed."""
        ...

    @abstractmethod
    def get_default_value(self) -> T:
        """Value served when the feed has never produced real data."""
        ...

    def describe(self, data: T) -> str:
        """One-line summary of a payload for the fetch log."""
        if isinstance(data, (list, tuple)):
            return f"{len(data)} item(s)"
        return type(data).__name__

    async def fetch(self) -> FetchResult[T]:
        """
        Fetch fresh data, or fall back to cached or default data.

        Returns:
            FetchResult whose `is_stale` is True exactly when the fallback
            path was used.
        """
        if not self.breaker.can_request():
            return self._fallback(
                CircuitOpenError(
                    self.service_id, self.breaker.get_time_until_reset() or 0
                )
            )

        try:
            data = await self.retry.run(self._attempt)
        except Exception as e:
            self.breaker.record_failure()
            return self._fallback(e)

        self.breaker.record_success()
        now = self.freshness.mark_success(self._clock())
        self.client.cache.store_success(self.cache_slot, data, self.source_label, at=now)
        self._serving_stale = False
        logger.info(f"[{self.service_id}] fetched {self.describe(data)}")

        return FetchResult(
            data=data,
            source=self.source_label,
            fetched_at=now,
            last_success_at=now,
        )

    async def _attempt(self) -> T:
        """One bounded attempt; timeouts and schema errors are classified here."""
        try:
            return await asyncio.wait_for(self.do_fetch(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(self.service_id, self.timeout) from e
        except ValidationError as e:
            raise InvalidApiResponseError(
                f"Payload failed validation: {e.error_count()} error(s)",
                service_id=self.service_id,
            ) from e

    def _fallback(self, error: Exception) -> FetchResult[T]:
        now = self._clock()
        slot = self.client.cache.store_fallback(
            self.cache_slot, self.get_default_value(), self.source_label, at=now
        )
        self._serving_stale = True

        if slot.degraded:
            logger.warning(
                f"[{self.service_id}] {type(error).__name__}: {error}; "
                f"no data yet, returning degraded default"
            )
        else:
            logger.warning(
                f"[{self.service_id}] {type(error).__name__}: {error}; "
                f"returning stale data from {slot.last_success_at.isoformat()}"
            )

        return FetchResult(
            data=slot.value,
            source=slot.source,
            fetched_at=now,
            last_success_at=slot.last_success_at,
            is_stale=True,
            from_cache=not slot.degraded,
            degraded=slot.degraded,
            error=f"{type(error).__name__}: {error}",
        )

    # Freshness accessors

    @property
    def last_successful_refresh(self) -> datetime | None:
        return self.freshness.last_success_at

    def data_age(self, now: datetime | None = None) -> timedelta | None:
        """Time since the last success; None when the feed never succeeded."""
        return self.freshness.data_age(now)

    def is_stale(self, now: datetime | None = None) -> bool:
        return self.freshness.is_stale(now)

    @property
    def is_serving_stale_data(self) -> bool:
        """True exactly when the most recent fetch used the fallback path."""
        return self._serving_stale

    def get_status(self, now: datetime | None = None) -> dict[str, Any]:
        """Freshness and breaker state for the feed status view."""
        age = self.data_age(now)
        last = self.last_successful_refresh
        return {
            "service_id": self.service_id,
            "source": self.source_label,
            "last_successful_refresh": last.isoformat() if last else None,
            "data_age_seconds": age.total_seconds() if age is not None else None,
            "refresh_interval_seconds": self.refresh_interval.total_seconds(),
            "is_stale": self.is_stale(now),
            "is_serving_stale_data": self.is_serving_stale_data,
            "circuit_state": self.breaker.state.value,
        }
