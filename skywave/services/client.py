"""
ServiceClient - shared async HTTP client and resilience registries.

Holds:
- one httpx.AsyncClient shared by every feed
- CacheManager with one slot per feed
- CircuitBreakerRegistry with one breaker per feed
- RetryConfig applied to every feed's live call

HTTP failures are mapped onto the service error hierarchy so the retry
policy can tell transient failures from permanent ones.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, TypeVar

import httpx
from loguru import logger

from skywave.services.cache import CacheManager
from skywave.services.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
)
from skywave.services.errors import (
    ExternalApiError,
    InvalidApiResponseError,
    RequestTimeoutError,
    TransportError,
)
from skywave.services.retry import RetryConfig
from skywave.settings import global_settings
from skywave.utils import utcnow

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Result of one pipeline fetch, annotated with its freshness."""

    data: T
    source: str
    fetched_at: datetime
    last_success_at: datetime | None = None
    is_stale: bool = False  # served from the fallback path
    from_cache: bool = False
    degraded: bool = False  # no real data was ever obtained
    error: str | None = None


class ServiceClient:
    """
    Shared HTTP client for all feeds.

    Usage:
        client = ServiceClient()
        text = await client.get_text("hamqsl", "https://www.hamqsl.com/solarxml.php")
        data = await client.get_json("noaa", url, max_bytes=512_000)
    """

    def __init__(
        self,
        default_timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        breaker_config: CircuitBreakerConfig | None = None,
        retry_config: RetryConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
        debug: bool = False,
    ):
        self._default_timeout = default_timeout or global_settings.http_timeout
        self._user_agent = user_agent or global_settings.http_user_agent
        self._transport = transport
        self._debug = debug
        self.clock = clock

        self.cache = CacheManager(debug=debug)
        self.circuit_breakers = CircuitBreakerRegistry(
            breaker_config or CircuitBreakerConfig.from_settings(global_settings),
            clock=clock,
        )
        self.retry_config = retry_config or RetryConfig.from_settings(global_settings)

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._default_timeout),
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
                transport=self._transport,
            )
        return self._http_client

    async def _get(
        self,
        service_id: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        max_bytes: int | None = None,
    ) -> httpx.Response:
        """
        GET a URL and return the checked response.

        Raises:
            RequestTimeoutError: If the request times out
            TransportError: Connection failure, 5xx or 429
            ExternalApiError: Any other non-2xx status
            InvalidApiResponseError: Body larger than max_bytes
        """
        client = await self._get_http_client()
        req_timeout = timeout or self._default_timeout

        try:
            response = await client.get(
                url, params=params, headers=headers, timeout=req_timeout
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(service_id, req_timeout) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"{type(e).__name__}: {e}", service_id=service_id
            ) from e

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise TransportError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                service_id=service_id,
            )
        if response.is_error:
            raise ExternalApiError(
                service_id,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        body = response.content
        if max_bytes is not None and len(body) > max_bytes:
            raise InvalidApiResponseError(
                f"Response of {len(body)} bytes exceeds limit of {max_bytes}",
                service_id=service_id,
            )
        if self._debug:
            logger.debug(f"[{service_id}] GET {url} -> {len(body)} bytes")
        return response

    async def get_bytes(self, service_id: str, url: str, **kwargs: Any) -> bytes:
        response = await self._get(service_id, url, **kwargs)
        return response.content

    async def get_text(self, service_id: str, url: str, **kwargs: Any) -> str:
        response = await self._get(service_id, url, **kwargs)
        return response.text

    async def get_json(self, service_id: str, url: str, **kwargs: Any) -> Any:
        """GET a URL and decode the body as JSON."""
        response = await self._get(service_id, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise InvalidApiResponseError(
                f"Response is not valid JSON: {e}", service_id=service_id
            ) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ServiceClient closed")

    async def __aenter__(self) -> "ServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def get_health_status(self) -> dict[str, Any]:
        """Get health status of the cache and all breakers."""
        return {
            "cache": self.cache.get_stats().to_dict(),
            "circuit_breakers": self.circuit_breakers.get_all_status(),
            "open_circuits": self.circuit_breakers.get_open_circuits(),
        }


# Global client instance
_global_client: ServiceClient | None = None


def get_service_client() -> ServiceClient:
    """Get the global service client instance."""
    global _global_client
    if _global_client is None:
        _global_client = ServiceClient()
    return _global_client


async def close_service_client() -> None:
    """Close the global service client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
