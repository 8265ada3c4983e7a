"""
Binance public market-data client.

Large trades are picked out of the most recent fills for each USDT pair.
Every endpoint used here is unauthenticated.
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from whalewatch.normalization.models import MarketStats, PriceQuote, Transaction
from whalewatch.normalization.normalizer import process_trades
from whalewatch.transactions.clients.base import (
    APIValidationError,
    BaseExchangeClient,
)

logger = structlog.get_logger()

SYMBOLS = {
    "btc": "BTCUSDT",
    "eth": "ETHUSDT",
    "sol": "SOLUSDT",
}


class BinanceClient(BaseExchangeClient):
    """Large-transaction source backed by Binance spot fills."""

    def get_source_name(self) -> str:
        """Return source identifier."""
        return "binance"

    async def _call(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.config.base_url.rstrip('/')}{endpoint}"
        return await self.http.fetch_with_retry(url, params=params)

    async def fetch_large_transactions(self, asset: str) -> List[Transaction]:
        """
        Fetch recent fills and, if not cached, the ticker concurrently.

        The ticker only warms the price cache so a following get_price()
        does not hit the network again. A ticker failure is logged and the
        trades are still processed.
        """
        symbol = SYMBOLS[asset]
        price_key = f"{self.get_source_name()}_{asset}_price"

        calls = [
            self._call(
                "/api/v3/trades",
                {"symbol": symbol, "limit": self.config.trades_fetch_limit},
            )
        ]
        if self.cache.get(price_key) is None:
            calls.append(self.fetch_price(asset))

        # Wait for every call so a failed one never leaves another running
        trades, *rest = await asyncio.gather(*calls, return_exceptions=True)
        if isinstance(trades, BaseException):
            raise trades

        if not isinstance(trades, list):
            raise APIValidationError(
                f"Expected a list of trades for {symbol}, got {type(trades).__name__}"
            )

        price = rest[0] if rest else None
        if isinstance(price, BaseException):
            logger.warning(
                "binance.ticker_failed",
                asset=asset,
                symbol=symbol,
                error=str(price),
                error_type=type(price).__name__,
            )
            price = None
        elif price is not None:
            self.cache.set(price_key, PriceQuote(asset=asset, price=price), self.config.price_ttl)

        transactions = process_trades(asset, trades, symbol, self.config.threshold_usd)

        logger.debug(
            "binance.trades_processed",
            asset=asset,
            symbol=symbol,
            trades=len(trades),
            large=len(transactions),
            current_price=price,
        )
        return transactions

    async def fetch_price(self, asset: str) -> float:
        symbol = SYMBOLS[asset]
        ticker = await self._call("/api/v3/ticker/price", {"symbol": symbol})
        try:
            return float(ticker["price"])
        except (KeyError, TypeError, ValueError) as e:
            raise APIValidationError(f"Malformed ticker for {symbol}: {ticker!r}") from e

    async def fetch_24h_stats(self, asset: str) -> Optional[MarketStats]:
        symbol = SYMBOLS[asset]
        stats = await self._call("/api/v3/ticker/24hr", {"symbol": symbol})
        try:
            return MarketStats(
                price_change=float(stats["priceChange"]),
                price_change_percent=float(stats["priceChangePercent"]),
                high=float(stats["highPrice"]),
                low=float(stats["lowPrice"]),
                volume=float(stats["volume"]),
                quote_volume=float(stats["quoteVolume"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise APIValidationError(f"Malformed 24h ticker for {symbol}") from e
