"""
Mock exchange client for offline development.

Generates Binance-shaped fills around fixed reference prices and feeds
them through the same normalization path as the real client.
"""

import asyncio
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from whalewatch.core.cache import TTLCache
from whalewatch.normalization.models import Transaction
from whalewatch.normalization.normalizer import process_trades
from whalewatch.transactions.clients.base import APIConnectionError, BaseExchangeClient
from whalewatch.transactions.clients.binance import SYMBOLS
from whalewatch.transactions.config import ExchangeConfig


class MockExchangeClient(BaseExchangeClient):
    """
    Mock client that generates synthetic exchange fills.

    Most generated fills are small; roughly one in ten is sized above
    the large-trade threshold.
    """

    def __init__(
        self,
        cache: TTLCache,
        config: Optional[ExchangeConfig] = None,
        failure_rate: float = 0.0,
        latency_ms: int = 100,
        trades_per_fetch: int = 200,
        seed: Optional[int] = None,
    ):
        """
        Initialize mock client.

        Args:
            cache: Shared response cache
            config: Adapter configuration (fallback prices double as reference prices)
            failure_rate: Probability of simulated failure (0.0 to 1.0)
            latency_ms: Simulated network latency in milliseconds
            trades_per_fetch: Fills generated per call
            seed: Optional RNG seed for reproducible output
        """
        super().__init__(http=None, cache=cache, config=config)
        self.failure_rate = failure_rate
        self.latency_ms = latency_ms
        self.trades_per_fetch = trades_per_fetch
        self._random = random.Random(seed)
        self._trade_counter = 0

    def get_source_name(self) -> str:
        """Return source identifier."""
        return "mock"

    async def fetch_large_transactions(self, asset: str) -> List[Transaction]:
        await self._simulate_latency()
        self._maybe_fail()

        reference = self._reference_price(asset)
        records = [self._generate_trade(reference) for _ in range(self.trades_per_fetch)]
        return process_trades(asset, records, SYMBOLS[asset], self.config.threshold_usd)

    async def fetch_price(self, asset: str) -> float:
        await self._simulate_latency()
        self._maybe_fail()
        reference = self._reference_price(asset)
        return round(reference * self._random.uniform(0.99, 1.01), 2)

    def _reference_price(self, asset: str) -> float:
        return self.config.fallback_prices.get(asset, 100.0)

    def _generate_trade(self, reference_price: float) -> Dict[str, Any]:
        """Generate a single Binance-shaped fill."""
        self._trade_counter += 1

        price = round(reference_price * self._random.uniform(0.995, 1.005), 2)
        if self._random.random() < 0.1:
            notional = self._random.uniform(
                self.config.threshold_usd, self.config.threshold_usd * 20
            )
        else:
            notional = self._random.uniform(10.0, self.config.threshold_usd * 0.5)
        qty = round(notional / price, 6)

        now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
        return {
            "id": self._trade_counter,
            "price": f"{price:.2f}",
            "qty": f"{qty:.6f}",
            "quoteQty": f"{price * qty:.2f}",
            "time": now_ms - self._random.randint(0, 10 * 60 * 1000),
            "isBuyerMaker": self._random.random() < 0.5,
            "isBestMatch": True,
        }

    def _maybe_fail(self) -> None:
        if self._random.random() < self.failure_rate:
            raise APIConnectionError("Simulated API connection failure")

    async def _simulate_latency(self):
        """Simulate network latency."""
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)
