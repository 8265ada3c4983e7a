"""
Large-transaction loading and presentation module.

This module fetches recent trades from upstream APIs, keeps the ones
above the USD threshold, caches the results, and drives the dashboard
state that the API and CLI render.
"""

from whalewatch.transactions.controller import DashboardController, build_dashboard
from whalewatch.transactions.clients.base import BaseExchangeClient
from whalewatch.transactions.clients.binance import BinanceClient
from whalewatch.transactions.metrics import LoadMetrics
from whalewatch.transactions.services import AssetService

__all__ = [
    "DashboardController",
    "build_dashboard",
    "BaseExchangeClient",
    "BinanceClient",
    "LoadMetrics",
    "AssetService",
]
