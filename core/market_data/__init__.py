"""Market data: CoinGecko quotes, the price cache and the mock realtime feed."""

from core.market_data.coingecko import TRACKED_COINS, CoinGeckoClient, MarketDataError
from core.market_data.feed import FEED_SYMBOLS, MockMarketFeed
from core.market_data.refresher import MarketDataRefresher
from core.market_data.service import FALLBACK_PRICES, MarketDataService

__all__ = [
    "FALLBACK_PRICES",
    "FEED_SYMBOLS",
    "TRACKED_COINS",
    "CoinGeckoClient",
    "MarketDataError",
    "MarketDataRefresher",
    "MarketDataService",
    "MockMarketFeed",
]
