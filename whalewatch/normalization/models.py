"""Data models for raw upstream records and the canonical transaction shape."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RawTrade(BaseModel):
    """One element of Binance's /api/v3/trades response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(..., description="Exchange trade id")
    price: float = Field(..., gt=0, description="Fill price in quote currency")
    qty: float = Field(..., ge=0, description="Fill size in base currency")
    quote_qty: Optional[float] = Field(
        default=None, alias="quoteQty", description="Fill value in quote currency"
    )
    time: int = Field(..., description="Fill time, epoch milliseconds")
    is_buyer_maker: bool = Field(..., alias="isBuyerMaker")
    is_best_match: Optional[bool] = Field(default=None, alias="isBestMatch")

    @property
    def quote_value(self) -> float:
        """Quote-currency value, derived from price and size when not reported."""
        if self.quote_qty is not None:
            return self.quote_qty
        return self.price * self.qty


class RawChainTransaction(BaseModel):
    """One transaction from Blockchair's dashboard endpoint."""

    model_config = ConfigDict(extra="ignore")

    hash: str
    usd_value: Optional[float] = None
    output_total: Optional[float] = None
    fee: Optional[float] = None
    fee_usd: Optional[float] = None
    time: Optional[float] = None
    block_id: Optional[int] = None
    block_hash: Optional[str] = None
    sending_address: Optional[str] = None
    receiving_address: Optional[str] = None
    inputs: list[dict[str, Any]] = Field(default_factory=list)
    outputs: list[dict[str, Any]] = Field(default_factory=list)


class Transaction(BaseModel):
    """Canonical large-transaction record shown on the dashboard."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique id; synthesized for exchange fills")
    hash: str = Field(..., description="On-chain hash, or the synthetic id")
    asset: str = Field(..., description="Asset identifier (btc, eth, sol)")
    network: str = Field(..., description="Display name of the network")
    amount_native: float = Field(..., description="Amount in the asset's own units")
    amount_usd: float = Field(..., description="USD (quote currency) value")
    from_address: str = Field(..., description="Sender address or counterparty label")
    to_address: str = Field(..., description="Receiver address or counterparty label")
    fee_native: float = 0.0
    fee_usd: float = 0.0
    timestamp: datetime
    block_height: int = 0
    block_hash: str = ""
    confirmations: int = 0
    explorer_url: str = ""
    is_exchange_trade: bool = False
    price: Optional[float] = Field(default=None, description="Fill price for exchange trades")


class PriceQuote(BaseModel):
    """Current price for an asset, flagged when it is a hardcoded fallback."""

    model_config = ConfigDict(frozen=True)

    asset: str
    price: float
    is_fallback: bool = False
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MarketStats(BaseModel):
    """Rolling 24 hour ticker statistics for a trading pair."""

    price_change: float
    price_change_percent: float
    high: float
    low: float
    volume: float
    quote_volume: float
