"""
Tests for the Blockchair on-chain client.

Covers dashboard parsing, rate-limit handling, API keys and the
stats-based price lookup.
"""

import pytest
import httpx

from whalewatch.transactions.clients.blockchair import BlockchairClient
from whalewatch.transactions.clients.http import HttpClient
from whalewatch.transactions.config import (
    BLOCKCHAIR_FALLBACK_PRICES,
    ExchangeConfig,
    RetryConfig,
)

DASHBOARD = {
    "data": {
        "transactions": {
            "aaa111": {
                "usd_value": 250_000.0,
                "output_total": 500_000_000,
                "fee": 12_000,
                "fee_usd": 5.1,
                "time": 1_760_000_000,
                "block_id": 915_000,
                "block_hash": "0000abc",
                "inputs": [{"sending_address": "bc1qsenderaddress0000"}],
                "outputs": [{"receiving_address": "bc1qreceiveraddress00"}],
            },
            "bbb222": {"usd_value": 20_000.0, "output_total": 40_000_000},
            "ccc333": {"output_total": 1},
        },
        "blocks": {},
    },
    "context": {"code": 200},
}


class BlockchairStub:
    def __init__(self):
        self.dashboard = DASHBOARD
        self.stats = {"data": {"market_price_usd": 61_234.5}, "context": {"code": 200}}
        self.requests = []

    def handler(self, request):
        self.requests.append(request)
        if request.url.path.endswith("/dashboard"):
            return httpx.Response(200, json=self.dashboard)
        if request.url.path.endswith("/stats"):
            return httpx.Response(200, json=self.stats)
        return httpx.Response(404)


@pytest.fixture
def stub():
    return BlockchairStub()


def make_client(stub, cache, **config):
    http = HttpClient(
        retry=RetryConfig(max_attempts=1, delay=0),
        transport=httpx.MockTransport(stub.handler),
    )
    config.setdefault("base_url", "https://api.blockchair.test")
    config.setdefault("fallback_prices", dict(BLOCKCHAIR_FALLBACK_PRICES))
    return BlockchairClient(http=http, cache=cache, config=ExchangeConfig(**config))


class TestLargeTransactions:
    """Tests for dashboard parsing."""

    @pytest.mark.asyncio
    async def test_filters_and_reshapes(self, stub, cache):
        client = make_client(stub, cache)

        txs = await client.get_large_transactions("btc")

        assert len(txs) == 1
        tx = txs[0]
        assert tx.id == tx.hash == "aaa111"
        assert tx.network == "Bitcoin"
        assert tx.amount_native == pytest.approx(5.0)
        assert tx.fee_native == pytest.approx(0.00012)
        assert tx.from_address == "bc1qsenderaddress0000"
        assert tx.to_address == "bc1qreceiveraddress00"
        assert tx.block_height == 915_000
        assert tx.is_exchange_trade is False
        assert tx.explorer_url == "https://blockchair.com/bitcoin/transaction/aaa111"

    @pytest.mark.asyncio
    async def test_dashboard_request_parameters(self, stub, cache):
        client = make_client(stub, cache, api_key="secret")

        await client.get_large_transactions("eth")

        request = stub.requests[0]
        assert request.url.path == "/ethereum/dashboard"
        assert request.url.params["transaction_state"] == "r"
        assert request.url.params["limit"] == "100"
        assert request.url.params["key"] == "secret"

    @pytest.mark.asyncio
    async def test_no_key_param_without_api_key(self, stub, cache):
        await make_client(stub, cache).get_large_transactions("btc")

        assert "key" not in stub.requests[0].url.params

    @pytest.mark.asyncio
    async def test_list_shaped_transactions(self, stub, cache):
        stub.dashboard = {
            "data": {"transactions": [{"hash": "zzz", "usd_value": 1_000_000.0}]},
            "context": {"code": 200},
        }

        txs = await make_client(stub, cache).get_large_transactions("sol")

        assert [tx.id for tx in txs] == ["zzz"]
        assert txs[0].from_address == "Unknown"

    @pytest.mark.asyncio
    async def test_rate_limited_is_empty_not_error(self, stub, cache):
        stub.dashboard = {"data": None, "context": {"code": 430, "error": "Limit exceeded"}}

        assert await make_client(stub, cache).get_large_transactions("btc") == []

    @pytest.mark.asyncio
    async def test_context_error_returns_empty(self, stub, cache):
        stub.dashboard = {"data": None, "context": {"code": 400, "error": "Bad request"}}
        client = make_client(stub, cache)

        assert await client.get_large_transactions("btc") == []
        # Failures are not cached
        assert cache.stats()["total"] == 0


class TestPrice:
    """Tests for the stats-based price."""

    @pytest.mark.asyncio
    async def test_market_price(self, stub, cache):
        quote = await make_client(stub, cache).get_price("btc")

        assert quote.price == 61_234.5
        assert quote.is_fallback is False
        assert stub.requests[0].url.path == "/bitcoin/stats"

    @pytest.mark.asyncio
    async def test_fallback_when_missing(self, stub, cache):
        stub.stats = {"data": {}, "context": {"code": 200}}

        quote = await make_client(stub, cache).get_price("eth")

        assert quote.price == BLOCKCHAIR_FALLBACK_PRICES["eth"]
        assert quote.is_fallback is True

    @pytest.mark.asyncio
    async def test_no_24h_stats(self, stub, cache):
        assert await make_client(stub, cache).get_24h_stats("btc") is None
