"""Per-asset service facades over the configured large-transaction source."""

from typing import Dict, Iterable, List, Optional

from whalewatch.normalization.models import MarketStats, PriceQuote, Transaction
from whalewatch.transactions.clients.base import BaseExchangeClient


class AssetService:
    """Binds one asset identifier to a client."""

    def __init__(self, asset: str, client: BaseExchangeClient):
        self.asset = asset
        self.client = client

    async def get_large_transactions(self, limit: int = 20) -> List[Transaction]:
        return await self.client.get_large_transactions(self.asset, limit)

    async def get_price(self) -> PriceQuote:
        return await self.client.get_price(self.asset)

    async def get_24h_stats(self) -> Optional[MarketStats]:
        return await self.client.get_24h_stats(self.asset)

    def __repr__(self) -> str:
        return f"AssetService(asset={self.asset!r}, source={self.client.get_source_name()!r})"


def build_asset_services(
    client: BaseExchangeClient, assets: Iterable[str]
) -> Dict[str, AssetService]:
    """Create one service per asset, keyed by asset identifier."""
    return {asset: AssetService(asset, client) for asset in assets}
