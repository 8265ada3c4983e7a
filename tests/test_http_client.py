"""
Tests for the HTTP client and fixed-delay retry.

Transport behavior is mostly driven through httpx.MockTransport. The
overall-deadline test uses a local socket server; no request
leaves the process.
"""

import asyncio
import time

import pytest
import httpx
from unittest.mock import AsyncMock, patch

from whalewatch.transactions.clients.base import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    APIValidationError,
)
from whalewatch.transactions.clients.http import HttpClient
from whalewatch.transactions.config import HttpConfig, RetryConfig
from whalewatch.transactions.retry import retry_with_delay


def make_client(handler, retry=None):
    return HttpClient(
        config=HttpConfig(timeout=5.0),
        retry=retry or RetryConfig(max_attempts=3, delay=0),
        transport=httpx.MockTransport(handler),
    )


class TestFetch:
    """Tests for a single request."""

    @pytest.mark.asyncio
    async def test_returns_parsed_json(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"price": "95000.00"})

        client = make_client(handler)
        data = await client.fetch("https://api.test/ticker", params={"symbol": "BTCUSDT"})

        assert data == {"price": "95000.00"}
        assert seen[0].url.params["symbol"] == "BTCUSDT"
        assert seen[0].headers["User-Agent"] == "whalewatch/0.1"
        assert client.request_count == 1

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        client = make_client(lambda request: httpx.Response(418))

        with pytest.raises(APIStatusError) as exc_info:
            await client.fetch("https://api.test/x")

        assert exc_info.value.status_code == 418
        assert "HTTP 418" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(APITimeoutError):
            await make_client(handler).fetch("https://api.test/x")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(APIConnectionError):
            await make_client(handler).fetch("https://api.test/x")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))

        with pytest.raises(APIValidationError):
            await client.fetch("https://api.test/x")


class TestOverallDeadline:
    """Tests against a real socket, where httpx's per-phase timeouts apply."""

    @pytest.mark.asyncio
    async def test_slow_body_times_out_at_overall_deadline(self):
        body = b"[" + b"1," * 50 + b"1]"
        writers = []

        async def trickle(reader, writer):
            writers.append(writer)
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: application/json\r\n"
                b"Content-Length: " + str(len(body)).encode() + b"\r\n\r\n"
            )
            for i in range(len(body)):
                if writer.is_closing():
                    return
                writer.write(body[i : i + 1])
                try:
                    await writer.drain()
                except ConnectionError:
                    return
                await asyncio.sleep(0.02)

        server = await asyncio.start_server(trickle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        client = HttpClient(config=HttpConfig(timeout=0.3))

        try:
            started = time.monotonic()
            with pytest.raises(APITimeoutError):
                await client.fetch(f"http://127.0.0.1:{port}/api/v3/trades")
            elapsed = time.monotonic() - started
        finally:
            for writer in writers:
                writer.close()
            server.close()
            await server.wait_closed()

        # Every individual read is well under 0.3s, so only a whole-request limit fires
        assert elapsed < 1.0


class TestFetchWithRetry:
    """Tests for retried requests."""

    @pytest.mark.asyncio
    async def test_always_timing_out_makes_exactly_three_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("slow", request=request)

        client = make_client(handler)
        with pytest.raises(APITimeoutError):
            await client.fetch_with_retry("https://api.test/x")

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json=[1, 2, 3])

        data = await make_client(handler).fetch_with_retry("https://api.test/x")

        assert data == [1, 2, 3]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_attempts_override(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(APIStatusError):
            await make_client(handler).fetch_with_retry("https://api.test/x", attempts=1)

        assert len(calls) == 1


class TestRetryWithDelay:
    """Tests for the retry helper itself."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        operation = AsyncMock(return_value="ok")

        result = await retry_with_delay(operation, RetryConfig(delay=0))

        assert result == "ok"
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_fixed_delay_between_attempts(self):
        """Every wait is the same length; there is no backoff growth."""
        operation = AsyncMock(side_effect=[APIConnectionError("1"), APIConnectionError("2"), "ok"])

        with patch("whalewatch.transactions.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await retry_with_delay(operation, RetryConfig(max_attempts=3, delay=1.0))

        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_reraises_last_error(self):
        operation = AsyncMock(
            side_effect=[APIConnectionError("first"), APIConnectionError("last")]
        )

        with pytest.raises(APIConnectionError, match="last"):
            await retry_with_delay(operation, RetryConfig(max_attempts=2, delay=0))

    @pytest.mark.asyncio
    async def test_no_sleep_after_final_attempt(self):
        operation = AsyncMock(side_effect=APIConnectionError("down"))

        with patch("whalewatch.transactions.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(APIConnectionError):
                await retry_with_delay(operation, RetryConfig(max_attempts=3, delay=0.5))

        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            await retry_with_delay(AsyncMock(), RetryConfig(), attempts=0)
