"""HTTP client service with retry logic and rate limiting."""

import asyncio
import time
from typing import Any

import httpx
import structlog

from .errors import NetworkError

log = structlog.stdlib.get_logger()


class HttpClientService:
    """HTTP client with bounded timeouts, retries and request spacing."""

    def __init__(
        self,
        timeout: float = 12.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        rate_limit_delay: float = 1.0,
        user_agent: str = "game-requirements-engine/0.1",
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            base_delay: Base delay for exponential backoff in seconds
            max_delay: Maximum delay between retries in seconds
            rate_limit_delay: Minimum delay between requests in seconds
            user_agent: User-Agent header sent with every request
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.rate_limit_delay = rate_limit_delay
        self._last_request_time: float = 0.0
        self._rate_lock = asyncio.Lock()

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )

        log.debug(
            "HTTP client service initialized",
            timeout=timeout,
            max_retries=max_retries,
            rate_limit_delay=rate_limit_delay,
        )

    async def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a GET request with retry logic and rate limiting.

        Raises:
            httpx.HTTPStatusError: On 4xx responses, or 5xx after all retries
            httpx.RequestError: If the request cannot complete after all retries
        """
        for attempt in range(self.max_retries + 1):
            await self._enforce_rate_limit()
            try:
                log.debug(
                    "Making HTTP GET request",
                    url=url,
                    attempt=attempt + 1,
                    max_attempts=self.max_retries + 1,
                )
                response = await self._client.get(url, headers=headers, params=params)
                response.raise_for_status()
                log.debug("HTTP GET request successful", url=url, status_code=response.status_code)
                return response

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                log.warning(
                    "HTTP GET request failed",
                    url=url,
                    attempt=attempt + 1,
                    error=str(e),
                    error_type=type(e).__name__,
                )

                if isinstance(e, httpx.HTTPStatusError):
                    status_code = e.response.status_code
                    if status_code == 429:
                        retry_after = e.response.headers.get("retry-after")
                        if retry_after and attempt < self.max_retries:
                            try:
                                delay = min(float(retry_after), self.max_delay)
                            except ValueError:
                                delay = None
                            if delay is not None:
                                log.info("Rate limited, waiting", delay=delay)
                                await asyncio.sleep(delay)
                                continue
                    elif 400 <= status_code < 500:
                        raise

                if attempt == self.max_retries:
                    log.warning("HTTP GET request failed after all retries", url=url, total_attempts=attempt + 1)
                    raise

                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                log.debug("Retrying after delay", delay=delay)
                await asyncio.sleep(delay)

        raise RuntimeError("Unexpected end of retry loop")

    async def get_json(
        self,
        url: str,
        params: dict[str, str] | None = None,
        source: str | None = None,
    ) -> Any:
        """GET a JSON document.

        Returns:
            The decoded body, or None when the resource does not exist (404)

        Raises:
            NetworkError: On transport failures, other error statuses or a
                body that is not valid JSON
        """
        try:
            response = await self.get(url, params=params)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                log.debug("Resource not found", url=url, source=source)
                return None
            raise NetworkError(
                message=f"Request to {source or 'source'} failed",
                original_error=e,
                url=url,
                status_code=e.response.status_code,
                source=source,
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                message=f"Could not reach {source or 'source'}",
                original_error=e,
                url=url,
                source=source,
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                message=f"Malformed response from {source or 'source'}",
                original_error=e,
                url=url,
                source=source,
            ) from e

    async def _enforce_rate_limit(self) -> None:
        async with self._rate_lock:
            time_since_last = time.monotonic() - self._last_request_time
            if time_since_last < self.rate_limit_delay:
                sleep_time = self.rate_limit_delay - time_since_last
                log.debug("Rate limiting: sleeping", sleep_time=sleep_time)
                await asyncio.sleep(sleep_time)
            self._last_request_time = time.monotonic()

    async def close(self) -> None:
        await self._client.aclose()
        log.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()
