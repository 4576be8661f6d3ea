"""
Async HTTP access to the crates.io API.

crates.io asks automated clients for two things: a User-Agent that
identifies the tool, and no more than one request per second. The
:class:`HTTPClient` here enforces both, retries transient failures with
exponential backoff, and turns every failure into a :class:`NetworkError`
carrying the registry's own error message when it sends one.
"""

from __future__ import annotations

import time
import httpx
import random
import asyncio
from typing import Any, Dict, Optional, cast

from depbound.utils.logger import get_logger
from depbound.__version__ import __version__
from depbound.exceptions import NetworkError, RegistryError
from depbound.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_DELAY,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")

#: Status codes worth another attempt (besides 429, handled separately).
_RETRYABLE_STATUS = frozenset({500, 502, 503, 504})


def _registry_detail(response: httpx.Response) -> Optional[str]:
    """Extract the message from a crates.io ``{"errors": [{"detail": ...}]}`` body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if not isinstance(errors, list):
        return None
    details = [e["detail"] for e in errors if isinstance(e, dict) and isinstance(e.get("detail"), str)]
    return "; ".join(details) or None


def _retry_after(response: httpx.Response, default: int = 1) -> int:
    """Seconds to wait before retrying a 429, from the ``Retry-After`` header."""
    value = response.headers.get("Retry-After")
    if value is None:
        return default
    try:
        return max(0, int(value))
    except ValueError:
        # HTTP-date form; not worth parsing for a short back-off
        return default


def _backoff(attempt: int) -> float:
    return (2**attempt) + random.uniform(0.0, 0.3)


class HTTPClient:
    """Rate-limited async client for JSON registry endpoints.

    Args:
        timeout: Request timeout in seconds.
        max_retries: Retries after the first attempt for timeouts,
            connection failures and 5xx responses.
        rate_limit_delay: Minimum spacing between requests in seconds.
        verify_ssl: Whether to verify TLS certificates.
        user_agent: User-Agent header; defaults to the depbound agent.
        max_concurrency: Requests allowed in flight at once.

    Example:
        >>> async with HTTPClient() as client:
        ...     data = await client.get_json("https://crates.io/api/v1/crates/serde")
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        max_concurrency: int = 10,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.max_concurrency = max_concurrency

        self._client: Optional[httpx.AsyncClient] = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_429_retries: int = 5

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                http2=True,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limit(self) -> None:
        """Wait until ``rate_limit_delay`` has passed since the previous request."""
        if self.rate_limit_delay <= 0:
            return

        async with self._rate_limit_lock:
            now = time.time()
            wait = self._last_request_time + self.rate_limit_delay - now
            if wait > 0:
                self._last_request_time = now + wait
                await asyncio.sleep(wait)
            else:
                self._last_request_time = now

    def _check_status(self, response: httpx.Response, url: str) -> None:
        """Raise for a non-success response that must not be retried.

        Raises:
            RegistryError: 404, the crate or release does not exist.
            NetworkError: Any other 4xx response.
        """
        status = response.status_code
        if status < 400 or status in _RETRYABLE_STATUS:
            return

        detail = _registry_detail(response)
        if status == 404:
            raise RegistryError(
                f"Resource not found: {url}" + (f" ({detail})" if detail else ""),
                url=url,
                status_code=404,
            )
        raise NetworkError(
            detail or f"HTTP {status} error for {url}",
            url=url,
            status_code=status,
            response_body=response.text,
        )

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET *url*, retrying timeouts, connection errors, 429 and 5xx.

        Raises:
            RegistryError: The resource does not exist.
            NetworkError: Any other failure, or retries exhausted.
        """
        client = await self._ensure_client()

        attempt = 0
        rate_limited = 0
        last_error: Optional[str] = None
        last_exc: Optional[Exception] = None

        while attempt <= self.max_retries:
            await self._rate_limit()

            try:
                async with self._semaphore:
                    response = await client.request("GET", url, **kwargs)
            except httpx.TimeoutException as exc:
                last_exc, last_error = exc, "timeout"
            except httpx.NetworkError as exc:
                last_exc, last_error = exc, f"network error: {exc}"
            else:
                if response.status_code == 429:
                    rate_limited += 1
                    if rate_limited > self._max_429_retries:
                        raise NetworkError(
                            f"Rate limit exceeded after {self._max_429_retries} retries",
                            url=url,
                            status_code=429,
                        )
                    delay = _retry_after(response)
                    logger.warning(
                        "crates.io rate limit hit, waiting %ds (%d/%d)",
                        delay,
                        rate_limited,
                        self._max_429_retries,
                    )
                    await asyncio.sleep(delay)
                    continue

                self._check_status(response, url)
                if response.status_code < 400:
                    logger.debug("GET %s -> %d", url, response.status_code)
                    return response
                last_exc, last_error = None, f"HTTP {response.status_code}"

            logger.warning(
                "Request to %s failed with %s (%d/%d)",
                url,
                last_error,
                attempt + 1,
                self.max_retries + 1,
            )
            if attempt < self.max_retries:
                delay = _backoff(attempt)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)
            attempt += 1

        raise NetworkError(
            f"Request failed after {self.max_retries + 1} attempts: {url}",
            url=url,
        ) from last_exc

    async def get_json(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        """GET *url* and decode the body as a JSON object.

        Raises:
            NetworkError: The request failed or the body is not a JSON object.
        """
        response = await self.get(url, **kwargs)

        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=response.text,
            ) from exc

        if not isinstance(data, dict):
            raise NetworkError(
                f"Expected JSON object from {url}",
                url=url,
                response_body=response.text,
            )

        return cast(Dict[str, Any], data)
