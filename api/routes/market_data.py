"""Market data cache, refresh handler and social sentiment."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.deps import Services, get_services
from core.market_data import MarketDataError
from core.storage import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["market-data"])


@router.post("/functions/fetch-market-data")
async def fetch_market_data(services: Services = Depends(get_services)) -> Any:
    """Refresh the market data cache from CoinGecko."""
    try:
        return await asyncio.to_thread(services.market_data.refresh)
    except (MarketDataError, StoreError) as exc:
        logger.error("Error fetching market data: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@router.get("/market-data")
def market_data(
    symbols: Optional[str] = Query(None, description="Comma-separated tickers, e.g. BTC,ETH"),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    wanted = [s.strip() for s in symbols.split(",") if s.strip()] if symbols else None
    prices = services.market_data.get_prices(wanted)
    return {"prices": prices, "count": len(prices)}


@router.post("/functions/social-sentiment-monitor")
def social_sentiment_monitor(services: Services = Depends(get_services)) -> Any:
    try:
        return services.sentiment.run()
    except StoreError as exc:
        logger.error("Social sentiment monitoring error: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
