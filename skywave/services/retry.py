"""
Retry with exponential backoff.

Retries transient failures (timeouts, transport errors, 5xx/429 responses)
a bounded number of times inside a single fetch. Malformed payloads are
never retried.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from loguru import logger

from skywave.services.errors import InvalidApiResponseError, TransientServiceError

T = TypeVar("T")

TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    TransientServiceError,
    asyncio.TimeoutError,
    httpx.TransportError,
    ConnectionError,
)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 0.5  # Initial delay in seconds
    max_delay: float = 5.0  # Maximum delay
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1  # Jitter as fraction of delay
    retry_exceptions: tuple = field(default_factory=lambda: TRANSIENT_EXCEPTIONS)
    no_retry_exceptions: tuple = (InvalidApiResponseError,)

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryConfig":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
        )


@dataclass
class RetryStats:
    """Statistics from a retry operation."""

    attempts: int = 0
    total_delay: float = 0.0
    success: bool = False
    final_exception: Exception | None = None


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate the wait before the attempt following `attempt` (1-based)."""
    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_range = delay * config.jitter_factor
        delay = delay + random.uniform(-jitter_range, jitter_range)

    return max(0, delay)


def should_retry(exc: BaseException, config: RetryConfig) -> bool:
    """Determine if an exception should trigger a retry."""
    if config.no_retry_exceptions and isinstance(exc, config.no_retry_exceptions):
        return False
    return isinstance(exc, config.retry_exceptions)


class RetryPolicy:
    """
    Runs an async callable with bounded retries.

    Usage:
        policy = RetryPolicy(RetryConfig(max_attempts=3), name="noaa")
        data = await policy.run(fetch_payload)

    The `sleep` hook exists so tests can skip real waiting.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        name: str = "default",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or RetryConfig()
        self.name = name
        self._sleep = sleep
        self.last_stats = RetryStats()

    async def run(self, func: Callable[[], Awaitable[T]]) -> T:
        """
        Call `func` until it succeeds or attempts run out.

        Raises the last exception when every attempt failed, or the first
        non-retryable exception immediately.
        """
        config = self.config
        stats = RetryStats()
        self.last_stats = stats

        for attempt in range(1, config.max_attempts + 1):
            stats.attempts = attempt
            try:
                result = await func()
                stats.success = True
                return result
            except Exception as e:
                stats.final_exception = e

                if not should_retry(e, config):
                    logger.debug(f"[{self.name}] {type(e).__name__} is not retryable")
                    raise

                if attempt >= config.max_attempts:
                    logger.warning(
                        f"[{self.name}] all {config.max_attempts} attempts failed: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise

                delay = calculate_delay(attempt, config)
                stats.total_delay += delay
                logger.warning(
                    f"[{self.name}] attempt {attempt}/{config.max_attempts} failed "
                    f"({type(e).__name__}: {e}), retrying in {delay:.2f}s"
                )
                await self._sleep(delay)

        # max_attempts < 1
        raise RuntimeError(f"[{self.name}] retry policy made no attempts")


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    name: str = "default",
) -> T:
    """Convenience wrapper around RetryPolicy.run."""
    return await RetryPolicy(config, name=name).run(func)
