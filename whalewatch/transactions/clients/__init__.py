"""Large-transaction source implementations."""

from whalewatch.transactions.clients.base import BaseExchangeClient
from whalewatch.transactions.clients.binance import BinanceClient
from whalewatch.transactions.clients.blockchair import BlockchairClient
from whalewatch.transactions.clients.http import HttpClient
from whalewatch.transactions.clients.mock_client import MockExchangeClient

__all__ = [
    "BaseExchangeClient",
    "BinanceClient",
    "BlockchairClient",
    "HttpClient",
    "MockExchangeClient",
]
