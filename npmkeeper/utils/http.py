"""
Registry HTTP client for npmkeeper.

:class:`HTTPClient` wraps :class:`httpx.AsyncClient` for talking to an npm
registry. Responses are classified as:

- ``2xx``: returned to the caller;
- ``404``: :class:`~npmkeeper.exceptions.RegistryError`, never retried;
- ``429``: retried after the server's ``Retry-After`` delay, on a separate
  budget from other failures;
- ``500``/``502``/``503``/``504``, timeouts and connection errors: retried
  with exponential backoff and jitter;
- any other ``4xx``/``5xx``: :class:`~npmkeeper.exceptions.NetworkError`.
"""

from __future__ import annotations

import time
import httpx
import random
import asyncio
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional, cast

from npmkeeper.utils.logger import get_logger
from npmkeeper.__version__ import __version__
from npmkeeper.exceptions import NetworkError, RegistryError
from npmkeeper.constants import (
    DEFAULT_CONCURRENT_LIMIT,
    DEFAULT_MAX_RATE_LIMIT_RETRIES,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    MAX_RETRY_DELAY,
    RETRYABLE_STATUS_CODES,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class HTTPClient:
    """Asynchronous registry client with retries, throttling and a concurrency cap.

    Args:
        timeout: Request timeout in seconds.
        max_retries: Retries after a transient failure (so at most
            ``max_retries + 1`` attempts).
        rate_limit_delay: Minimum delay (seconds) between requests.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        max_concurrency: Maximum number of requests in flight.
        auth_token: Bearer token sent to the registry, if any.

    Example:
        >>> async with HTTPClient(auth_token=os.environ.get("NPM_TOKEN")) as client:
        ...     data = await client.get_json("https://registry.npmjs.org/@angular%2Fcore")
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rate_limit_delay: float = 0.0,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        max_concurrency: int = DEFAULT_CONCURRENT_LIMIT,
        auth_token: Optional[str] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.max_concurrency = max_concurrency
        self.auth_token = auth_token

        self._client: Optional[httpx.AsyncClient] = None
        self._next_request_at: float = 0.0
        self._throttle_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_429_retries: int = DEFAULT_MAX_RATE_LIMIT_RETRIES

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    def _default_headers(self) -> Dict[str, str]:
        # Full packuments: the abbreviated install format drops ng-update
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def _ensure_client(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                http2=True,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers=self._default_headers(),
            )

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _throttle(self) -> None:
        """Space requests at least ``rate_limit_delay`` seconds apart."""
        if self.rate_limit_delay <= 0:
            return

        async with self._throttle_lock:
            now = time.monotonic()
            wait = self._next_request_at - now
            self._next_request_at = max(now, self._next_request_at) + self.rate_limit_delay

        if wait > 0:
            await asyncio.sleep(wait)

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        Raises:
            RegistryError: The registry answered 404.
            NetworkError: A non-retryable status, or every attempt failed.
        """
        await self._ensure_client()
        assert self._client is not None

        clean_url = url.strip().strip("\"'")
        attempts = self.max_retries + 1
        attempt = 0
        rate_limited = 0
        last_exc: Optional[Exception] = None
        last_status: Optional[int] = None

        while attempt < attempts:
            await self._throttle()

            try:
                async with self._semaphore:
                    response = await self._client.request(method, clean_url, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                last_exc = exc
                logger.warning(
                    "%s (%d/%d): %s",
                    "Request timeout" if isinstance(exc, httpx.TimeoutException) else "Network error",
                    attempt + 1,
                    attempts,
                    clean_url,
                )
            else:
                status = response.status_code

                if status == 429:
                    rate_limited += 1
                    if rate_limited > self._max_429_retries:
                        raise NetworkError(
                            f"Rate limit exceeded after {self._max_429_retries} retries",
                            url=clean_url,
                            status_code=429,
                        )
                    delay = _retry_after(response.headers.get("Retry-After"))
                    logger.warning(
                        "Rate limited (429), retrying after %gs (%d/%d)",
                        delay,
                        rate_limited,
                        self._max_429_retries,
                    )
                    await asyncio.sleep(delay)
                    continue

                if status == 404:
                    raise RegistryError(
                        f"Resource not found: {clean_url}",
                        url=clean_url,
                        status_code=404,
                    )

                if status < 400:
                    return response

                if status not in RETRYABLE_STATUS_CODES:
                    raise NetworkError(
                        f"HTTP {status} error for {clean_url}",
                        url=clean_url,
                        status_code=status,
                        response_body=response.text,
                    )

                last_status = status
                logger.warning("HTTP %d (%d/%d): %s", status, attempt + 1, attempts, clean_url)

            attempt += 1
            if attempt < attempts:
                delay = _backoff(attempt - 1)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)

        raise NetworkError(
            f"Request failed after {attempts} attempts: {clean_url}",
            url=clean_url,
            status_code=last_status,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET *url* with retries."""
        return await self._request_with_retry("GET", url, **kwargs)

    async def get_json(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        """GET *url* and return its body, which must be a JSON object."""
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


def _backoff(retry: int) -> float:
    """Exponential delay with jitter for the *retry*-th retry (0-based)."""
    return min(MAX_RETRY_DELAY, 2**retry + random.uniform(0.0, 0.3))


def _retry_after(value: Optional[str]) -> float:
    """Seconds to wait for a ``Retry-After`` header (delta-seconds or HTTP date)."""
    if not value:
        return 1.0

    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return 1.0
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - datetime.now(timezone.utc)).total_seconds()

    return min(MAX_RETRY_DELAY, max(0.0, seconds))
