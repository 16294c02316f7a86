"""Market data cache refresh and price reads."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from core.market_data.coingecko import TRACKED_COINS, CoinGeckoClient
from core.storage import Stores

logger = logging.getLogger(__name__)

CACHE_TABLE = "market_data_cache"

# Used when the cache has no usable price for a symbol.
FALLBACK_PRICES: dict[str, float] = {
    "BTC": 98500.0,
    "ETH": 3650.0,
    "SOL": 195.0,
    "BNB": 680.0,
    "XRP": 2.15,
    "ADA": 0.89,
}


def _quote_row(coin_id: str, quote: dict[str, Any]) -> dict[str, Any]:
    last_updated = quote.get("last_updated_at")
    return {
        "symbol": TRACKED_COINS.get(coin_id, coin_id.upper()),
        "name": coin_id,
        "price_usd": quote.get("usd"),
        "price_aud": quote.get("aud"),
        "volume_24h_usd": quote.get("usd_24h_vol"),
        "volume_24h_aud": quote.get("aud_24h_vol"),
        "change_24h": quote.get("usd_24h_change"),
        "change_percentage_24h": quote.get("usd_24h_change"),
        "market_cap_usd": quote.get("usd_market_cap"),
        "market_cap_aud": quote.get("aud_market_cap"),
        "last_updated": (
            datetime.fromtimestamp(last_updated, tz=timezone.utc) if last_updated else datetime.now(timezone.utc)
        ),
        "exchange": "coingecko",
    }


class MarketDataService:
    def __init__(self, stores: Stores, *, client: Optional[CoinGeckoClient] = None) -> None:
        self._stores = stores
        self._client = client or CoinGeckoClient()

    def refresh(self) -> dict[str, Any]:
        """Replace the cache with fresh CoinGecko quotes.

        Raises:
            MarketDataError: if CoinGecko fails. The cache is left untouched.
        """
        quotes = self._client.fetch_simple_prices(TRACKED_COINS.keys())
        rows = [_quote_row(coin_id, quote) for coin_id, quote in quotes.items() if isinstance(quote, dict)]

        self._stores.delete_rows(CACHE_TABLE)
        self._stores.insert_rows(CACHE_TABLE, rows)
        logger.info("Market data cache refreshed with %d rows", len(rows))

        return {"success": True, "message": "Market data updated successfully", "count": len(rows)}

    def get_prices(self, symbols: Optional[Iterable[str]] = None) -> list[dict[str, Any]]:
        """Cached quotes ordered by market cap, with static fallbacks for gaps.

        When ``symbols`` is given, any requested symbol with no usable cached
        price is filled from ``FALLBACK_PRICES`` (flagged ``exchange='fallback'``).
        Symbols with neither are omitted.
        """
        wanted = [s.upper() for s in symbols] if symbols is not None else None
        filters = {"symbol": wanted} if wanted is not None else None
        rows = self._stores.select_rows(CACHE_TABLE, filters=filters, order_by="market_cap_usd", descending=True)

        prices = [row for row in rows if row.get("price_usd") and row["price_usd"] > 0]
        # NULL market caps sort first on PostgreSQL; keep them last everywhere.
        prices.sort(key=lambda row: row.get("market_cap_usd") or 0.0, reverse=True)

        seen = {row["symbol"] for row in prices}
        for symbol in wanted if wanted is not None else FALLBACK_PRICES:
            if symbol in seen or symbol not in FALLBACK_PRICES:
                continue
            prices.append(
                {
                    "symbol": symbol,
                    "name": symbol,
                    "price_usd": FALLBACK_PRICES[symbol],
                    "change_percentage_24h": 0.0,
                    "exchange": "fallback",
                }
            )
        return prices
