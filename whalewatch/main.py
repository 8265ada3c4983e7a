from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from whalewatch import __version__
from whalewatch.core.config import get_settings
from whalewatch.core.logging import configure_logging, request_id_middleware
from whalewatch.transactions.controller import build_dashboard
from whalewatch.transactions.router import market_router
from whalewatch.transactions.router import router as transactions_router

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.ENV, settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    logger.info("Starting WhaleWatch...")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Data provider: {settings.DATA_PROVIDER}")

    dashboard = build_dashboard(settings)
    app.state.dashboard = dashboard

    if settings.AUTO_REFRESH_ENABLED:
        await dashboard.start()
        logger.info("Auto-refresh started")
    else:
        logger.warning("Auto-refresh disabled; use POST /transactions/refresh")

    logger.info("WhaleWatch startup complete")

    yield

    # Shutdown
    logger.info("Shutting down WhaleWatch...")
    await dashboard.stop()
    logger.info("WhaleWatch shutdown complete")


app = FastAPI(title="WhaleWatch", version=__version__, lifespan=lifespan)
app.middleware("http")(request_id_middleware)
app.include_router(transactions_router)
app.include_router(market_router)


@app.get("/")
def health_check():
    logger.debug("Health check endpoint called")
    return {"status": "ok"}


@app.get("/healthz")
def healthz():
    logger.debug(f"Healthz endpoint called (env: {settings.ENV})")
    return {"status": "healthy", "env": settings.ENV, "provider": settings.DATA_PROVIDER}
