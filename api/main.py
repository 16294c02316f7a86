"""FastAPI application for the paper trading backend.

Serves the dashboard's data access and serverless-handler endpoints:
- /accounts, /trades, /settings, /notifications - user data (X-User-Id header)
- /functions/* - paper-trade, fetch-market-data, ai-chat-assistant,
  live-trading-connector, social-sentiment-monitor
- /market-data - cached prices
- /ws/market-feed, /ws/changes - mock price feed and table change channel
- /health - database and market data status

Requirements:
- DATABASE_URL must be set in environment
- Callers identify themselves with X-User-Id (no authentication)
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.deps import get_services
from api.routes import accounts, ai, health, market_data, notifications, settings, trading, ws
from core.market_data import MarketDataRefresher

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    services = get_services()
    services.stores.create_schema()
    services.change_feed.attach(services.stores)

    refresher: MarketDataRefresher | None = None
    if services.config.market_data_refresh_seconds > 0:
        refresher = MarketDataRefresher(
            services.market_data,
            interval_seconds=services.config.market_data_refresh_seconds,
        )
        refresher.start()
        logger.info("Market data refresh every %ss", services.config.market_data_refresh_seconds)

    try:
        yield
    finally:
        if refresher is not None:
            await refresher.stop()
        services.change_feed.detach()
        await services.assistant.close()


app = FastAPI(
    title="Paper Trading API",
    description="Paper trading accounts, market data, AI assistant and live order routing",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-user-id"],
)

for module in (health, accounts, trading, market_data, settings, notifications, ai, ws):
    app.include_router(module.router)


@app.exception_handler(Exception)
async def global_exception_handler(_request, exc):
    """Global exception handler to ensure consistent error responses."""
    logger.error("Unhandled error: %s", exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
