"""
Service layer exceptions.

Transient failures (timeouts, transport errors) are retried by the retry
policy; everything else propagates straight to the fallback path.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class TransientServiceError(ServiceError):
    """A failure worth retrying within the same fetch."""

    pass


class RequestTimeoutError(TransientServiceError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class TransportError(TransientServiceError):
    """Connection refused or reset, DNS failure, or a 5xx/429 response."""

    pass


class ExternalApiError(ServiceError):
    """Upstream rejected the request (non-retryable HTTP status)."""

    def __init__(
        self, service_id: str, message: str, status_code: int | None = None
    ):
        self.status_code = status_code
        super().__init__(message, service_id=service_id)


class InvalidApiResponseError(ServiceError):
    """Payload was received but is malformed, incomplete, or out of range."""

    pass


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request blocked."""

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker open for service '{service_id}', "
            f"retry after {reset_after_seconds:.1f}s",
            service_id=service_id,
        )
