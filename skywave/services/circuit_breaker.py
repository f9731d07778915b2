"""
CircuitBreaker - Stops calling a failing upstream feed for a cool-down period.

States:
- CLOSED: Normal operation, outcomes recorded in a sliding window
- OPEN: Feed is failing, requests are blocked
- HALF_OPEN: A limited number of probe requests test recovery

Transitions:
- CLOSED → OPEN: When the failure rate over the sliding window reaches the threshold
- OPEN → HALF_OPEN: After reset_timeout expires
- HALF_OPEN → CLOSED: When enough probes succeed
- HALF_OPEN → OPEN: When enough probes fail
"""

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from loguru import logger

from skywave.utils import utcnow


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Blocking requests
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    sliding_window_size: int = 10  # Outcomes remembered while CLOSED
    minimum_calls: int = 5  # Outcomes needed before the rate is evaluated
    failure_rate_threshold: float = 50.0  # Percent
    reset_timeout: timedelta = timedelta(seconds=60)  # Time before half-open
    half_open_max_requests: int = 3  # Probe requests allowed in half-open

    @classmethod
    def from_settings(cls, settings: Any) -> "CircuitBreakerConfig":
        return cls(
            sliding_window_size=settings.cb_sliding_window,
            minimum_calls=settings.cb_minimum_calls,
            failure_rate_threshold=settings.cb_failure_rate,
            reset_timeout=timedelta(seconds=settings.cb_reset_timeout_seconds),
            half_open_max_requests=settings.cb_half_open_calls,
        )


class CircuitBreaker:
    """
    Circuit breaker implementation for a single feed.

    Usage:
        cb = CircuitBreaker("noaa")

        if not cb.can_request():
            raise CircuitOpenError(...)

        try:
            result = await make_request()
            cb.record_success()
            return result
        except Exception:
            cb.record_failure()
            raise
    """

    def __init__(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.service_id = service_id
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._window: deque[bool] = deque(maxlen=self.config.sliding_window_size)
        self._last_failure_time: datetime | None = None
        self._opened_at: datetime | None = None
        self._half_open_requests = 0
        self._probe_successes = 0
        self._probe_failures = 0
        self._rejected_count = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current state, checking for automatic transitions."""
        with self._lock:
            return self._current_state()

    def _current_state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if (
                self._opened_at
                and self._clock() >= self._opened_at + self.config.reset_timeout
            ):
                self._state = CircuitState.HALF_OPEN
                self._half_open_requests = 0
                self._probe_successes = 0
                self._probe_failures = 0
                logger.info(
                    f"Circuit breaker '{self.service_id}' transitioned to HALF_OPEN"
                )
        return self._state

    def can_request(self) -> bool:
        """
        Check if a request is allowed.

        In HALF_OPEN every permitted request consumes one probe slot.
        """
        with self._lock:
            current_state = self._current_state()

            if current_state == CircuitState.CLOSED:
                return True

            if current_state == CircuitState.HALF_OPEN:
                if self._half_open_requests < self.config.half_open_max_requests:
                    self._half_open_requests += 1
                    return True

            self._rejected_count += 1
            return False

    @property
    def failure_rate(self) -> float:
        """Failure percentage over the sliding window (0 when empty)."""
        with self._lock:
            return self._window_failure_rate()

    def _window_failure_rate(self) -> float:
        if not self._window:
            return 0.0
        failures = sum(1 for ok in self._window if not ok)
        return failures * 100.0 / len(self._window)

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._probe_successes += 1
                self._evaluate_probes()
            elif self._state == CircuitState.CLOSED:
                self._window.append(True)

    def record_failure(self) -> None:
        """Record a failed (or rejected) request."""
        with self._lock:
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._probe_failures += 1
                self._evaluate_probes()
            elif self._state == CircuitState.CLOSED:
                self._window.append(False)
                if (
                    len(self._window) >= self.config.minimum_calls
                    and self._window_failure_rate()
                    >= self.config.failure_rate_threshold
                ):
                    self._open()

    def _evaluate_probes(self) -> None:
        permitted = self.config.half_open_max_requests
        threshold = self.config.failure_rate_threshold

        if self._probe_failures * 100.0 / permitted >= threshold:
            self._open()
        elif self._probe_successes * 100.0 / permitted > 100.0 - threshold:
            self._close()
        elif self._probe_successes + self._probe_failures >= permitted:
            self._open()

    def _open(self) -> None:
        """Transition to OPEN state."""
        previous = self._state
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._half_open_requests = 0
        if previous == CircuitState.HALF_OPEN:
            logger.warning(
                f"Circuit breaker '{self.service_id}' re-OPENED after "
                f"{self._probe_failures} failed probe(s)"
            )
        else:
            logger.warning(
                f"Circuit breaker '{self.service_id}' OPENED at "
                f"{self._window_failure_rate():.0f}% failure rate"
            )

    def _close(self) -> None:
        """Transition to CLOSED state."""
        self._state = CircuitState.CLOSED
        self._window.clear()
        self._opened_at = None
        self._half_open_requests = 0
        self._probe_successes = 0
        self._probe_failures = 0
        logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._window.clear()
            self._opened_at = None
            self._half_open_requests = 0
            self._probe_successes = 0
            self._probe_failures = 0
            self._last_failure_time = None
        logger.info(f"Circuit breaker '{self.service_id}' manually reset")

    def get_time_until_reset(self) -> float | None:
        """Get seconds until circuit transitions to half-open."""
        if self._state != CircuitState.OPEN or not self._opened_at:
            return None

        reset_at = self._opened_at + self.config.reset_timeout
        remaining = (reset_at - self._clock()).total_seconds()
        return max(0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "service_id": self.service_id,
            "state": self.state.value,
            "failure_rate": self.failure_rate,
            "window_size": len(self._window),
            "rejected_count": self._rejected_count,
            "last_failure": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
            "opened_at": (self._opened_at.isoformat() if self._opened_at else None),
            "time_until_reset": self.get_time_until_reset(),
        }


class CircuitBreakerRegistry:
    """
    Registry for managing one circuit breaker per feed.

    Usage:
        registry = CircuitBreakerRegistry()
        cb = registry.get("noaa")
    """

    def __init__(
        self,
        default_config: CircuitBreakerConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._default_config = default_config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()

    def get(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
    ) -> CircuitBreaker:
        """Get or create a circuit breaker for a feed."""
        with self._lock:
            if service_id not in self._breakers:
                self._breakers[service_id] = CircuitBreaker(
                    service_id,
                    config or self._default_config,
                    clock=self._clock,
                )
            return self._breakers[service_id]

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of all circuit breakers."""
        return {
            service_id: cb.get_status() for service_id, cb in self._breakers.items()
        }

    def reset_all(self) -> None:
        """Reset all circuit breakers."""
        for cb in self._breakers.values():
            cb.reset()
        logger.info(f"Reset {len(self._breakers)} circuit breakers")

    def reset(self, service_id: str) -> bool:
        """Reset a specific circuit breaker."""
        if service_id in self._breakers:
            self._breakers[service_id].reset()
            return True
        return False

    def get_open_circuits(self) -> list[str]:
        """Get list of feeds with open circuits."""
        return [
            service_id
            for service_id, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]
