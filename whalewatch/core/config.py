from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    This uses pydantic-settings so that we get type validation and defaults.
    Settings are loaded from environment variables with optional .env file override.
    """

    # App basics
    ENV: Literal["development", "staging", "production"] = "development"
    """Environment mode: affects logging and which data source is allowed."""

    DEBUG: bool = True
    """Enable debug mode: verbose logging."""

    LOG_LEVEL: str = "INFO"
    """Minimum log level for the console renderer."""

    # Data source
    DATA_PROVIDER: Literal["binance", "blockchair", "mock"] = "binance"
    """Which adapter feeds the dashboard: exchange fills, on-chain, or synthetic."""

    BINANCE_BASE_URL: str = "https://api.binance.com"
    """Base URL for the Binance public REST API."""

    BLOCKCHAIR_BASE_URL: str = "https://api.blockchair.com"
    """Base URL for the Blockchair API."""

    BLOCKCHAIR_API_KEY: Optional[str] = None
    """Optional Blockchair API key; anonymous access is rate limited."""

    # Dashboard
    LARGE_TRADE_THRESHOLD_USD: float = 100_000.0
    """Minimum USD value for a trade to count as large."""

    TRANSACTIONS_PER_ASSET: int = 20
    """How many large transactions to keep per asset on each refresh."""

    AUTO_REFRESH_ENABLED: bool = True
    """Start the periodic refresh tasks with the API server."""

    # Model config
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid re-parsing .env repeatedly."""
    return Settings()
