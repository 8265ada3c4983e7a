"""
Async HTTP client with a fixed timeout and fixed-delay retry.

Wraps httpx so upstream failures surface as APIError subclasses:
timeouts, non-success statuses, transport errors and bad JSON.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx
import structlog

from whalewatch.transactions.clients.base import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    APIValidationError,
)
from whalewatch.transactions.config import HttpConfig, RetryConfig
from whalewatch.transactions.retry import retry_with_delay

logger = structlog.get_logger()


class HttpClient:
    """JSON-over-HTTP client used by every upstream adapter."""

    def __init__(
        self,
        config: Optional[HttpConfig] = None,
        retry: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Timeout and header settings
            retry: Retry policy for fetch_with_retry
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config or HttpConfig()
        self.retry = retry or RetryConfig()
        self._transport = transport
        self.request_count = 0

    async def fetch(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issue a single GET request and return the parsed JSON body.

        Raises:
            APITimeoutError: If the request exceeds the configured timeout
            APIStatusError: If the response status is not 2xx
            APIConnectionError: If the transport fails
            APIValidationError: If the body is not valid JSON
        """
        request_headers = {"User-Agent": self.config.user_agent}
        if headers:
            request_headers.update(headers)

        self.request_count += 1

        async def send() -> httpx.Response:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                return await client.get(url, params=params, headers=request_headers)

        # httpx limits each phase separately; the overall deadline covers a slow body
        try:
            response = await asyncio.wait_for(send(), timeout=self.config.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise APITimeoutError(
                f"Request timed out after {self.config.timeout}s: {url}"
            ) from e
        except httpx.RequestError as e:
            raise APIConnectionError(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            raise APIStatusError(response.status_code, response.reason_phrase)

        try:
            return response.json()
        except ValueError as e:
            raise APIValidationError(f"Invalid JSON from {url}") from e

    async def fetch_with_retry(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        attempts: Optional[int] = None,
    ) -> Any:
        """
        GET with up to `attempts` tries and a fixed delay between them.

        Args:
            url: Absolute URL
            params: Query parameters
            headers: Extra request headers
            attempts: Total attempts (defaults to the retry config)

        Returns:
            Parsed JSON body

        Raises:
            APIError: The last failure once attempts are exhausted
        """

        async def fetch():
            return await self.fetch(url, params=params, headers=headers)

        return await retry_with_delay(
            fetch, self.retry, operation_name=f"GET {url}", attempts=attempts
        )
