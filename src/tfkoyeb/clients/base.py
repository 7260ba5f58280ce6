from __future__ import annotations

from typing import Any

import httpx
import structlog
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tfkoyeb.core.errors import UpstreamError

logger = structlog.get_logger()

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class HTTPError(UpstreamError):
    """Koyeb API call failed; ``status_code`` is None for network failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, {"status": status_code} if status_code else None)
        self.status_code = status_code


class RetryableHTTPError(HTTPError):
    """Throttling, server-side or network failure worth another attempt."""


class PermanentHTTPError(HTTPError):
    """Client-side failure (auth, validation, conflict); retrying won't help."""


class NotFoundHTTPError(PermanentHTTPError):
    """The requested resource does not exist (HTTP 404)."""


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUSES


def _error_message(response: httpx.Response) -> str:
    """Prefer the API's ``message`` field over the raw body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return f"HTTP {response.status_code}: {body['message']}"
    return f"HTTP {response.status_code}: {response.text or response.reason_phrase}"


def raise_for_status(response: httpx.Response, method: str, url: str) -> None:
    """Map a non-2xx response onto the client error hierarchy."""
    status = response.status_code
    if status < 400:
        return

    message = _error_message(response)
    if is_retryable_status(status):
        logger.warning("http_retryable_error", status=status, method=method, url=url)
        raise RetryableHTTPError(message, status)
    if status == 404:
        logger.debug("http_not_found", method=method, url=url)
        raise NotFoundHTTPError(message, status)

    logger.error("http_permanent_error", status=status, method=method, url=url, error=message)
    raise PermanentHTTPError(message, status)


class BaseHTTPClient:
    """
    JSON-over-HTTP client with retry logic and circuit breaker.

    Each client owns its breaker. Calls rejected by an open breaker raise
    RetryableHTTPError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        circuit_failure_threshold: int = 5,
        circuit_recovery_timeout: int = 60,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._breaker = CircuitBreaker(
            failure_threshold=circuit_failure_threshold,
            recovery_timeout=circuit_recovery_timeout,
            expected_exception=RetryableHTTPError,
            name=f"koyeb-api:{self._base_url}:{id(self):x}",
        )
        retrying = retry(
            retry=retry_if_exception_type(RetryableHTTPError),
            stop=stop_after_attempt(max_retries),
            wait=wait_exponential(multiplier=backoff_factor, max=30),
            reraise=True,
        )
        self._guarded_send = self._breaker(retrying(self._send))

    def _headers(self) -> dict[str, str]:
        """Override to provide auth headers."""
        return {"Content-Type": "application/json"}

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, params=params, json=json, headers=self._headers())
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise RetryableHTTPError(f"{method} {url}: {exc}") from exc

        raise_for_status(response, method, url)
        return response.json() if response.content else {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute HTTP request with retry and circuit breaker."""
        try:
            return await self._guarded_send(method, path, params=params, json=json)
        except CircuitBreakerError as exc:
            logger.warning(
                "http_circuit_open",
                method=method,
                path=path,
                failures=self._breaker.failure_count,
            )
            raise RetryableHTTPError(f"Koyeb API unavailable, {method} {path} not sent: {exc}") from exc

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._request("POST", path, json=json)

    async def put(self, path: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._request("PUT", path, json=json)

    async def patch(self, path: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self._request("PATCH", path, json=json)

    async def delete(self, path: str) -> dict[str, Any]:
        return await self._request("DELETE", path)
