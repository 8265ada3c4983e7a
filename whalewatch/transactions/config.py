"""
Dashboard configuration.

Defines settings for HTTP timeouts, the retry policy, per-adapter
thresholds and cache lifetimes, and the refresh schedule.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from whalewatch.core.config import Settings, get_settings


class HttpConfig(BaseModel):
    """Configuration for outbound HTTP requests."""

    timeout: float = Field(default=10.0, gt=0, description="Request timeout in seconds")
    user_agent: str = Field(
        default="whalewatch/0.1", description="User-Agent header sent upstream"
    )


class RetryConfig(BaseModel):
    """Configuration for fixed-delay retry."""

    max_attempts: int = Field(default=3, ge=1, description="Total attempts per request")
    delay: float = Field(
        default=1.0, ge=0, description="Seconds to wait between attempts"
    )


class ExchangeConfig(BaseModel):
    """Configuration shared by the large-transaction adapters."""

    base_url: str = Field(default="https://api.binance.com")
    api_key: Optional[str] = Field(default=None, description="Optional upstream API key")
    threshold_usd: float = Field(
        default=100_000.0, gt=0, description="Minimum USD value of a large trade"
    )
    trades_fetch_limit: int = Field(
        default=1000, ge=1, le=1000, description="Recent trades requested per pair"
    )
    transactions_ttl: float = Field(
        default=60.0, gt=0, description="Cache lifetime of a large-transaction list"
    )
    price_ttl: float = Field(default=60.0, gt=0, description="Cache lifetime of a price")
    fallback_prices: Dict[str, float] = Field(
        default_factory=lambda: {"btc": 95000.0, "eth": 3200.0, "sol": 240.0},
        description="Prices reported when the ticker cannot be fetched",
    )


class DashboardConfig(BaseModel):
    """Main dashboard configuration."""

    assets: List[str] = Field(default_factory=lambda: ["btc", "eth", "sol"])
    transactions_per_asset: int = Field(default=20, ge=1)

    refresh_interval_minutes: int = Field(
        default=5, ge=1, description="Minutes between forced refreshes"
    )
    clock_interval_seconds: int = Field(
        default=60, ge=1, description="Seconds between last-update label refreshes"
    )

    http: HttpConfig = Field(default_factory=HttpConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)

    def get_refresh_interval_seconds(self) -> int:
        """Get refresh interval in seconds."""
        return self.refresh_interval_minutes * 60


BLOCKCHAIR_FALLBACK_PRICES = {"btc": 42000.0, "eth": 2200.0, "sol": 95.0}


def get_dashboard_config(settings: Optional[Settings] = None) -> DashboardConfig:
    """Build the dashboard configuration from application settings."""
    settings = settings or get_settings()

    if settings.DATA_PROVIDER == "blockchair":
        exchange = ExchangeConfig(
            base_url=settings.BLOCKCHAIR_BASE_URL,
            api_key=settings.BLOCKCHAIR_API_KEY,
            threshold_usd=settings.LARGE_TRADE_THRESHOLD_USD,
            transactions_ttl=5 * 60,
            price_ttl=5 * 60,
            fallback_prices=dict(BLOCKCHAIR_FALLBACK_PRICES),
        )
    else:
        exchange = ExchangeConfig(
            base_url=settings.BINANCE_BASE_URL,
            threshold_usd=settings.LARGE_TRADE_THRESHOLD_USD,
        )

    return DashboardConfig(
        transactions_per_asset=settings.TRANSACTIONS_PER_ASSET,
        exchange=exchange,
    )
