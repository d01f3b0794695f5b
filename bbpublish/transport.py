"""
HTTP Transport for bbpublish.

Handles HTTP communication with Bitbucket Server: authorization headers,
deadline enforcement, optional retry of idempotent requests, and mapping
of transport failures onto the calling operation's error type.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from bbpublish.deadline import Deadline
from bbpublish.exceptions import ApiError, Cancelled
from bbpublish.logging import log_http_request, log_http_response

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS"})


@dataclass
class RetryConfig:
    """
    Configuration for automatic retry behavior.

    Retries are off by default: every failed call is fatal to the invocation
    unless the caller opts in.
    """

    max_retries: int = 0
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 502, 503, 504])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # Maximum backoff time in seconds
    jitter: float = 0.1  # Jitter factor (0.1 = ±10%)
    idempotent_only: bool = True  # never retry POST unless disabled


class HTTPTransport:
    """
    HTTP transport layer for the Bitbucket Server REST API.

    Handles:
    - Authorization and JSON content-type headers on every request
    - Per-request timeouts clamped to the caller's deadline
    - Exponential backoff with jitter for opted-in retries
    - Wrapping network failures into the operation's ApiError subclass
    """

    def __init__(
        self,
        base_url: str,
        authorization: str,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        deadline: Deadline | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize HTTP transport.

        Args:
            base_url: REST API base URL (e.g., "https://bitbucket.example.com/rest/api/1.0")
            authorization: Full Authorization header value
            timeout: Request timeout in seconds
            retry_config: Configuration for retry behavior
            deadline: Optional deadline bounding every request
            http_transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        if not authorization:
            raise ValueError("authorization must not be empty")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self.deadline = deadline or Deadline()

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={
                "Authorization": authorization,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=http_transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "HTTPTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        error_cls: type[ApiError],
        action: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make a request and return the response whatever its status.

        Status handling is left to the caller; only failures to obtain a
        response are raised here.

        Args:
            method: HTTP method
            path: Path relative to the API base, or an absolute URL
            error_cls: Error type raised when no response can be obtained
            action: Human readable operation, used in error messages
            params: Query parameters
            body: JSON request body

        Raises:
            Cancelled: If the deadline expired or cancellation was requested
            ApiError: (as error_cls) on network failure
        """
        method = method.upper()

        def make_request() -> httpx.Response:
            self.deadline.check(f"{method} {path}")
            log_http_request(method, path, body=body)
            response = self._client.request(
                method,
                path,
                params=params,
                json=body,
                timeout=self.deadline.timeout_for(self.timeout),
            )
            # cancellation requested while the request was in flight
            self.deadline.check(f"handling response of {method} {path}")
            return response

        return self._execute_with_retry(make_request, method, error_cls, action)

    def _execute_with_retry(
        self,
        request_fn: Callable[[], httpx.Response],
        method: str,
        error_cls: type[ApiError],
        action: str,
    ) -> httpx.Response:
        """
        Execute a request, retrying retryable outcomes when configured.

        Returns:
            The final response (any status)
        """
        attempt = 0
        while True:
            started = time.monotonic()
            try:
                response = request_fn()
            except httpx.TimeoutException as e:
                if self.deadline.expired:
                    raise Cancelled(f"Deadline exceeded during {action}") from e
                if not self._can_retry(method, attempt):
                    raise error_cls(f"{action}, {e!r}") from e
                self._sleep(self._get_backoff_time(attempt, None))
                attempt += 1
                continue
            except httpx.RequestError as e:
                if not self._can_retry(method, attempt):
                    raise error_cls(f"{action}, {e!r}") from e
                self._sleep(self._get_backoff_time(attempt, None))
                attempt += 1
                continue

            log_http_response(
                response.status_code,
                str(getattr(response, "url", "")),
                body=response.text,
                elapsed_ms=(time.monotonic() - started) * 1000,
            )

            if not self._should_retry(method, response.status_code, attempt):
                return response

            retry_after = response.headers.get("Retry-After")
            self._sleep(self._get_backoff_time(attempt, retry_after))
            attempt += 1

    def _can_retry(self, method: str, attempt: int) -> bool:
        if attempt >= self.retry_config.max_retries:
            return False
        return not self.retry_config.idempotent_only or method in _IDEMPOTENT_METHODS

    def _should_retry(self, method: str, status_code: int, attempt: int) -> bool:
        """
        Determine if a response should be retried.

        Args:
            method: HTTP method of the request
            status_code: HTTP status code
            attempt: Current attempt number (0-indexed)
        """
        if not self._can_retry(method, attempt):
            return False

        return status_code in self.retry_config.retry_on

    def _sleep(self, seconds: float) -> None:
        remaining = self.deadline.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        time.sleep(seconds)
        self.deadline.check("retry")

    def _get_backoff_time(
        self, attempt: int, retry_after: str | None
    ) -> float:
        """
        Calculate backoff time for retry.

        Uses exponential backoff with jitter, respecting Retry-After header
        if present.

        Args:
            attempt: Current attempt number (0-indexed)
            retry_after: Value of Retry-After header (if present)

        Returns:
            Time to wait in seconds
        """
        if retry_after and self.retry_config.respect_retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass  # HTTP-date form, fall through to exponential backoff

        base_wait = self.retry_config.backoff_factor ** attempt

        jitter_range = base_wait * self.retry_config.jitter
        wait_time = base_wait + random.uniform(-jitter_range, jitter_range)

        return min(wait_time, self.retry_config.max_backoff)
