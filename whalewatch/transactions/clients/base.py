"""
Base large-transaction client interface.

Defines the contract every upstream adapter implements and the shared
cache-or-fetch pipeline: fetch, filter by threshold, reshape, rank,
cache. Failures inside the pipeline never propagate to callers.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

import structlog

from whalewatch.core.cache import TTLCache
from whalewatch.normalization.models import MarketStats, PriceQuote, Transaction
from whalewatch.normalization.normalizer import rank_transactions
from whalewatch.transactions.config import ExchangeConfig

if TYPE_CHECKING:
    from whalewatch.transactions.clients.http import HttpClient

logger = structlog.get_logger()

SUPPORTED_ASSETS = ("btc", "eth", "sol")


class BaseExchangeClient(ABC):
    """
    Abstract base class for large-transaction sources.

    Subclasses implement the raw fetches; this class owns caching, ranking
    and the swallow-and-log failure policy.
    """

    def __init__(
        self,
        http: Optional["HttpClient"],
        cache: TTLCache,
        config: Optional[ExchangeConfig] = None,
    ):
        """
        Initialize the client.

        Args:
            http: HTTP client used for upstream calls (None for offline sources)
            cache: Shared response cache
            config: Adapter configuration
        """
        self.http = http
        self.cache = cache
        self.config = config or ExchangeConfig()

    @abstractmethod
    def get_source_name(self) -> str:
        """
        Get the name of this source.

        Returns:
            Source identifier (e.g., 'binance', 'blockchair', 'mock')
        """
        pass

    @abstractmethod
    async def fetch_large_transactions(self, asset: str) -> List[Transaction]:
        """
        Fetch and reshape every large transaction currently visible upstream.

        Returns:
            Unsorted transactions, all at or above the threshold

        Raises:
            APIError: On any upstream or decoding failure
        """
        pass

    @abstractmethod
    async def fetch_price(self, asset: str) -> float:
        """
        Fetch the current USD price of an asset.

        Raises:
            APIError: On any upstream or decoding failure
        """
        pass

    async def fetch_24h_stats(self, asset: str) -> Optional[MarketStats]:
        """Fetch 24h ticker statistics. Sources without a ticker return None."""
        return None

    def check_asset(self, asset: str) -> None:
        if asset not in SUPPORTED_ASSETS:
            raise UnsupportedAssetError(f"Unsupported asset: {asset}")

    async def get_large_transactions(self, asset: str, limit: int = 20) -> List[Transaction]:
        """
        Get the largest recent transactions for an asset, cached.

        Args:
            asset: Asset identifier
            limit: Maximum number of transactions to return

        Returns:
            Transactions sorted by USD value, largest first. An empty list
            also stands for "unknown" when the upstream fetch failed.
        """
        source = self.get_source_name()
        cache_key = f"{source}_{asset}_transactions_{limit}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"{source}.cache_hit", asset=asset, key=cache_key)
            return list(cached)

        try:
            self.check_asset(asset)
            transactions = await self.fetch_large_transactions(asset)
            ranked = rank_transactions(transactions, limit)
            self.cache.set(cache_key, ranked, self.config.transactions_ttl)

            logger.info(
                f"{source}.large_transactions_fetched",
                asset=asset,
                found=len(transactions),
                returned=len(ranked),
            )
            return list(ranked)
        except Exception as e:
            logger.error(
                f"{source}.fetch_failed",
                asset=asset,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    async def get_price(self, asset: str) -> PriceQuote:
        """
        Get the current price, cached. Falls back to a hardcoded price.

        A fallback quote has is_fallback=True and is not cached.
        """
        source = self.get_source_name()
        cache_key = f"{source}_{asset}_price"

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            self.check_asset(asset)
            price = await self.fetch_price(asset)
            quote = PriceQuote(asset=asset, price=price)
            self.cache.set(cache_key, quote, self.config.price_ttl)
            return quote
        except Exception as e:
            fallback = self.config.fallback_prices.get(asset, 0.0)
            logger.warning(
                f"{source}.price_fallback",
                asset=asset,
                fallback_price=fallback,
                error=str(e),
            )
            return PriceQuote(asset=asset, price=fallback, is_fallback=True)

    async def get_24h_stats(self, asset: str) -> Optional[MarketStats]:
        """Get 24h statistics, or None when they cannot be fetched."""
        try:
            self.check_asset(asset)
            return await self.fetch_24h_stats(asset)
        except Exception as e:
            logger.error(
                f"{self.get_source_name()}.stats_failed", asset=asset, error=str(e)
            )
            return None


class APIError(Exception):
    """Base exception for upstream client errors."""

    pass


class APITimeoutError(APIError):
    """Raised when a request exceeds the configured timeout."""

    pass


class APIStatusError(APIError):
    """Raised when the upstream answers with a non-success status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}".rstrip(": "))


class APIConnectionError(APIError):
    """Raised when connection to the upstream fails."""

    pass


class APIValidationError(APIError):
    """Raised when the upstream returns data of the wrong shape."""

    pass


class UnsupportedAssetError(APIError):
    """Raised for an asset identifier no adapter maps."""

    pass
