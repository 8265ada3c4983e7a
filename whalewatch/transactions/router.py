"""
Dashboard API routes.

Exposes the merged large-transaction list, manual refresh, controller
status and load metrics, plus per-asset market data.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field
import logging

from whalewatch.normalization.models import MarketStats, PriceQuote, Transaction
from whalewatch.transactions.controller import (
    ALL_ASSETS,
    DashboardController,
    SortOrder,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])
market_router = APIRouter(prefix="/market", tags=["market"])


def get_dashboard(request: Request) -> DashboardController:
    """Return the dashboard built during application startup."""
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard is not initialized",
        )
    return dashboard


class TransactionListResponse(BaseModel):
    """Response for the transaction list."""

    view: str
    state: str
    error: Optional[str]
    asset: str
    sort: str
    last_update_text: str
    count: int
    transactions: List[Transaction]


class RefreshResponse(BaseModel):
    """Response for a manual refresh."""

    status: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ViewUpdate(BaseModel):
    """Presentation state change."""

    asset: Optional[str] = None
    sort: Optional[SortOrder] = None


class MetricsResponse(BaseModel):
    """Response for metrics endpoint."""

    aggregate: Dict[str, Any]
    success_rate: float
    recent_runs: list[Dict[str, Any]]


def _check_asset_filter(dashboard: DashboardController, asset: str) -> None:
    if asset != ALL_ASSETS and asset not in dashboard.services:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown asset filter: {asset}",
        )


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    asset: Optional[str] = None,
    sort: Optional[SortOrder] = None,
    dashboard: DashboardController = Depends(get_dashboard),
):
    """
    List visible large transactions.

    Omitted filters fall back to the dashboard's selected asset and sort.
    """
    asset = asset or dashboard.selected_asset
    _check_asset_filter(dashboard, asset)
    order = sort or dashboard.sort

    txs = dashboard.visible_transactions(asset=asset, sort=order.value)
    return TransactionListResponse(
        view=dashboard.view_status(asset=asset).value,
        state=dashboard.state.value,
        error=dashboard.error_message,
        asset=asset,
        sort=order.value,
        last_update_text=dashboard.last_update_text,
        count=len(txs),
        transactions=txs,
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(force: bool = False, dashboard: DashboardController = Depends(get_dashboard)):
    """
    Trigger a load immediately.

    With force=true the cache is cleared first. A refresh requested while
    another load is running is skipped.
    """
    result = await dashboard.load_data(force=force)

    if result["status"] == "skipped":
        message = "A load is already in progress"
    elif result["status"] == "error":
        message = f"Load failed: {result.get('error')}"
    else:
        message = f"Loaded {result['transactions']} transactions"

    logger.info(f"Manual refresh finished: {result['status']}")
    return RefreshResponse(status=result["status"], message=message, details=result)


@router.put("/view")
async def update_view(update: ViewUpdate, dashboard: DashboardController = Depends(get_dashboard)):
    """Change the selected asset filter and/or sort order."""
    if update.asset is not None:
        _check_asset_filter(dashboard, update.asset)
        dashboard.set_asset(update.asset)
    if update.sort is not None:
        dashboard.set_sort(update.sort.value)
    return {"asset": dashboard.selected_asset, "sort": dashboard.sort.value}


@router.get("/status")
async def get_status(dashboard: DashboardController = Depends(get_dashboard)):
    """Controller state, last update, cache statistics and config."""
    return dashboard.get_status()


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(hours: Optional[int] = None, dashboard: DashboardController = Depends(get_dashboard)):
    """
    Get aggregate metrics for load cycles.

    Args:
        hours: Limit to last N hours (omit for all history)
    """
    return dashboard.get_metrics(hours=hours)


@router.get("/{tx_id}", response_model=Transaction)
async def get_transaction(tx_id: str, dashboard: DashboardController = Depends(get_dashboard)):
    """Full detail of a single transaction."""
    tx = dashboard.get_transaction(tx_id)
    if tx is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return tx


@router.post("/{tx_id}/toggle")
async def toggle_transaction(tx_id: str, dashboard: DashboardController = Depends(get_dashboard)):
    """Expand a transaction's detail, or collapse it if already expanded."""
    if dashboard.get_transaction(tx_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return {"expanded_tx_id": dashboard.toggle_expand(tx_id)}


def _get_service(dashboard: DashboardController, asset: str):
    service = dashboard.services.get(asset)
    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unsupported asset: {asset}")
    return service


@market_router.get("/{asset}/price", response_model=PriceQuote)
async def get_price(asset: str, dashboard: DashboardController = Depends(get_dashboard)):
    """Current price; is_fallback marks a hardcoded fallback."""
    return await _get_service(dashboard, asset).get_price()


@market_router.get("/{asset}/stats", response_model=MarketStats)
async def get_stats(asset: str, dashboard: DashboardController = Depends(get_dashboard)):
    """Rolling 24 hour ticker statistics."""
    stats = await _get_service(dashboard, asset).get_24h_stats()
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"24h statistics unavailable for {asset}",
        )
    return stats
