"""
Dashboard controller.

Loads large transactions for every tracked asset concurrently, merges
them, and keeps the presentation state (asset filter, sort order,
expanded card, last update) the API and CLI render from.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog

from whalewatch.core.cache import TTLCache
from whalewatch.core.config import Settings, get_settings
from whalewatch.normalization.formatting import format_time_ago
from whalewatch.normalization.models import Transaction
from whalewatch.transactions.clients.base import BaseExchangeClient
from whalewatch.transactions.clients.binance import BinanceClient
from whalewatch.transactions.clients.blockchair import BlockchairClient
from whalewatch.transactions.clients.http import HttpClient
from whalewatch.transactions.clients.mock_client import MockExchangeClient
from whalewatch.transactions.config import DashboardConfig, get_dashboard_config
from whalewatch.transactions.metrics import LoadMetrics, LoadStatus
from whalewatch.transactions.services import AssetService, build_asset_services

logger = structlog.get_logger("dashboard")

ALL_ASSETS = "all"


class DashboardState(str, Enum):
    """Load state of the dashboard."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class SortOrder(str, Enum):
    """Sort orders for the visible list; both are descending."""

    AMOUNT = "amount"
    TIME = "time"


class ViewStatus(str, Enum):
    """What a presentation surface should show."""

    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    TRANSACTIONS = "transactions"


class DashboardController:
    """
    Orchestrates loads across assets and owns the presentation state.

    All mutation happens on the event loop between awaits. A load that
    starts while another is in flight is rejected rather than queued.
    """

    def __init__(
        self,
        services: Dict[str, AssetService],
        cache: TTLCache,
        config: Optional[DashboardConfig] = None,
        source_name: str = "unknown",
    ):
        """
        Initialize the controller.

        Args:
            services: Per-asset services, keyed by asset identifier
            cache: Response cache shared with the clients (cleared on forced loads)
            config: Dashboard configuration
            source_name: Name of the data source, for status output
        """
        self.services = services
        self.cache = cache
        self.config = config or DashboardConfig()
        self.source_name = source_name
        self.metrics = LoadMetrics()

        self.state = DashboardState.IDLE
        self.error_message: Optional[str] = None
        self.transactions: List[Transaction] = []
        self.last_update: Optional[datetime] = None
        self.last_update_text = self.last_update_label()

        self.selected_asset = ALL_ASSETS
        self.sort = SortOrder.AMOUNT
        self.expanded_tx_id: Optional[str] = None

        self._running = False
        self._tasks: List[asyncio.Task] = []

        logger.info(
            "dashboard.initialized",
            assets=list(services),
            source=source_name,
            refresh_interval_minutes=self.config.refresh_interval_minutes,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self.state == DashboardState.LOADING

    async def load_data(self, force: bool = False) -> Dict[str, Any]:
        """
        Fetch every asset concurrently and replace the transaction list.

        Args:
            force: Clear the whole cache first so no cached result is reused

        Returns:
            Summary of the cycle (run id, status, counts, error)
        """
        if self.is_loading:
            logger.warning("dashboard.load_skipped", reason="already_loading", force=force)
            self.metrics.record_skipped(forced=force)
            return {"status": LoadStatus.SKIPPED.value}

        previous_state = self.state
        self.state = DashboardState.LOADING
        run_id = self.metrics.start_run(forced=force)
        logger.info("dashboard.load_started", run_id=run_id, force=force)

        try:
            if force:
                self.cache.clear()
                logger.debug("dashboard.cache_cleared", run_id=run_id)

            assets = list(self.services)
            limit = self.config.transactions_per_asset
            results = await asyncio.gather(
                *(self.services[asset].get_large_transactions(limit) for asset in assets),
                return_exceptions=True,
            )

            merged: List[Transaction] = []
            failures: List[tuple[str, BaseException]] = []
            for asset, result in zip(assets, results):
                if isinstance(result, BaseException):
                    failures.append((asset, result))
                    self.metrics.record_failure(asset, str(result))
                    logger.error(
                        "dashboard.asset_failed",
                        run_id=run_id,
                        asset=asset,
                        error=str(result),
                        error_type=type(result).__name__,
                    )
                    continue
                merged.extend(result)
                self.metrics.record_asset(asset, len(result))

            self.transactions = merged

            if failures and len(failures) == len(assets) and not merged:
                first_error = failures[0][1]
                self.error_message = str(first_error) or type(first_error).__name__
                self.state = DashboardState.ERROR
                status = LoadStatus.ERROR
            else:
                self.error_message = None
                self.state = DashboardState.LOADED
                self.last_update = datetime.now(timezone.utc)
                status = LoadStatus.PARTIAL if failures else LoadStatus.LOADED

            self.refresh_clock()
            self.metrics.end_run(status)

            logger.info(
                "dashboard.load_completed",
                run_id=run_id,
                status=status.value,
                transactions=len(merged),
                failed_assets=[asset for asset, _ in failures],
            )
            return {
                "run_id": run_id,
                "status": status.value,
                "transactions": len(merged),
                "failed_assets": [asset for asset, _ in failures],
                "error": self.error_message,
            }
        finally:
            if self.state == DashboardState.LOADING:
                # Cancelled or failed outside the per-asset fetches
                self.state = previous_state
                self.metrics.end_run(LoadStatus.ERROR)

    # ------------------------------------------------------------------
    # Presentation state
    # ------------------------------------------------------------------

    def set_asset(self, asset: str) -> None:
        if asset != ALL_ASSETS and asset not in self.services:
            raise ValueError(f"Unknown asset filter: {asset}")
        self.selected_asset = asset

    def set_sort(self, sort: str) -> None:
        self.sort = SortOrder(sort)

    def toggle_expand(self, tx_id: str) -> Optional[str]:
        """Expand a card, or collapse it if it is already expanded."""
        self.expanded_tx_id = None if self.expanded_tx_id == tx_id else tx_id
        return self.expanded_tx_id

    def visible_transactions(
        self, asset: Optional[str] = None, sort: Optional[str] = None
    ) -> List[Transaction]:
        """
        Derive the filtered, sorted view. The stored list is never modified.

        Args:
            asset: Asset filter, defaults to the selected one
            sort: Sort order, defaults to the selected one
        """
        asset = asset or self.selected_asset
        order = SortOrder(sort) if sort else self.sort

        txs = list(self.transactions)
        if asset != ALL_ASSETS:
            txs = [tx for tx in txs if tx.asset == asset]

        if order == SortOrder.AMOUNT:
            txs.sort(key=lambda tx: tx.amount_usd, reverse=True)
        else:
            txs.sort(key=lambda tx: tx.timestamp, reverse=True)
        return txs

    def view_status(self, asset: Optional[str] = None) -> ViewStatus:
        if self.state == DashboardState.LOADING:
            return ViewStatus.LOADING
        if self.state == DashboardState.ERROR:
            return ViewStatus.ERROR
        if not self.visible_transactions(asset=asset):
            return ViewStatus.EMPTY
        return ViewStatus.TRANSACTIONS

    def get_transaction(self, tx_id: str) -> Optional[Transaction]:
        for tx in self.transactions:
            if tx.id == tx_id:
                return tx
        return None

    def last_update_label(self, now: Optional[datetime] = None) -> str:
        if self.last_update is None:
            return "Loading..."
        return f"Last updated: {format_time_ago(self.last_update, now=now)}"

    def refresh_clock(self) -> str:
        self.last_update_text = self.last_update_label()
        return self.last_update_text

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run an initial load, then start the refresh and clock tasks."""
        if self._running:
            logger.warning("dashboard.already_running")
            return

        self._running = True
        await self.load_data()

        self._tasks = [
            asyncio.create_task(self._refresh_loop()),
            asyncio.create_task(self._clock_loop()),
        ]
        logger.info(
            "dashboard.started",
            refresh_interval_seconds=self.config.get_refresh_interval_seconds(),
            clock_interval_seconds=self.config.clock_interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the background tasks."""
        if not self._running:
            logger.debug("dashboard.not_running")
            return

        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("dashboard.stopped")

    async def _refresh_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.config.get_refresh_interval_seconds())
                await self.load_data(force=True)
            except asyncio.CancelledError:
                logger.info("dashboard.refresh_loop_cancelled")
                break
            except Exception as e:
                logger.exception("dashboard.refresh_loop_error", error=str(e))

    async def _clock_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.config.clock_interval_seconds)
                self.refresh_clock()
            except asyncio.CancelledError:
                break

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        last_run = self.metrics.get_last_run()
        return {
            "state": self.state.value,
            "view": self.view_status().value,
            "running": self._running,
            "error": self.error_message,
            "last_update": self.last_update.isoformat() if self.last_update else None,
            "last_update_text": self.last_update_text,
            "transaction_count": len(self.transactions),
            "selected_asset": self.selected_asset,
            "sort": self.sort.value,
            "expanded_tx_id": self.expanded_tx_id,
            "cache": self.cache.stats(),
            "last_run": last_run.to_dict() if last_run else None,
            "success_rate_24h": self.metrics.get_success_rate(hours=24),
            "config": {
                "source": self.source_name,
                "assets": list(self.services),
                "transactions_per_asset": self.config.transactions_per_asset,
                "refresh_interval_minutes": self.config.refresh_interval_minutes,
                "threshold_usd": self.config.exchange.threshold_usd,
            },
        }

    def get_metrics(self, hours: Optional[int] = None) -> Dict[str, Any]:
        aggregate = self.metrics.get_aggregate_metrics(hours)
        return {
            "aggregate": aggregate.to_dict(),
            "success_rate": self.metrics.get_success_rate(hours),
            "recent_runs": [r.to_dict() for r in self.metrics.get_history(limit=10)],
        }


def create_client(
    settings: Settings,
    config: DashboardConfig,
    cache: TTLCache,
    http: Optional[HttpClient] = None,
) -> BaseExchangeClient:
    """Create the large-transaction client selected by DATA_PROVIDER."""
    if settings.DATA_PROVIDER == "mock":
        if settings.ENV == "production":
            logger.warning("dashboard.mock_client_in_production")
        return MockExchangeClient(cache=cache, config=config.exchange)

    http = http or HttpClient(config=config.http, retry=config.retry)
    if settings.DATA_PROVIDER == "blockchair":
        return BlockchairClient(http=http, cache=cache, config=config.exchange)
    return BinanceClient(http=http, cache=cache, config=config.exchange)


def build_dashboard(
    settings: Optional[Settings] = None,
    config: Optional[DashboardConfig] = None,
    http: Optional[HttpClient] = None,
) -> DashboardController:
    """
    Construct a dashboard with its own cache, client and services.

    Each call returns an independent context; nothing is shared between
    dashboards built by separate calls.
    """
    settings = settings or get_settings()
    config = config or get_dashboard_config(settings)
    cache = TTLCache()
    client = create_client(settings, config, cache, http=http)
    services = build_asset_services(client, config.assets)
    return DashboardController(
        services=services,
        cache=cache,
        config=config,
        source_name=client.get_source_name(),
    )
