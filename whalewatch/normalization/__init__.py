"""Normalization of upstream trade and transfer records."""

from whalewatch.normalization.models import (
    MarketStats,
    PriceQuote,
    RawChainTransaction,
    RawTrade,
    Transaction,
)
from whalewatch.normalization.normalizer import (
    TradeParseError,
    process_chain_transactions,
    process_trades,
    rank_transactions,
)

__all__ = [
    "MarketStats",
    "PriceQuote",
    "RawChainTransaction",
    "RawTrade",
    "Transaction",
    "TradeParseError",
    "process_chain_transactions",
    "process_trades",
    "rank_transactions",
]
