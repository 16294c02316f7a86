"""CoinGecko client for spot prices of the tracked coins.

Uses the free tier API (no API key required).
Rate limit: 10-30 calls/minute on free tier.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import requests

logger = logging.getLogger(__name__)

COINGECKO_API_BASE = "https://api.coingecko.com/api/v3"

# CoinGecko coin id -> ticker
TRACKED_COINS: dict[str, str] = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "solana": "SOL",
    "cardano": "ADA",
    "ripple": "XRP",
    "chainlink": "LINK",
    "uniswap": "UNI",
    "polkadot": "DOT",
    "avalanche-2": "AVAX",
    "polygon": "MATIC",
}


class MarketDataError(RuntimeError):
    """Upstream price source failed or returned an unusable payload."""


class CoinGeckoClient:
    """Client for CoinGecko API (free tier, no API key)."""

    DEFAULT_TIMEOUT = 10  # seconds

    def __init__(self, *, timeout: int = DEFAULT_TIMEOUT, base_url: str = COINGECKO_API_BASE) -> None:
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "CoinGeckoClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def fetch_simple_prices(
        self,
        ids: Iterable[str],
        vs_currencies: Iterable[str] = ("usd", "aud"),
    ) -> dict[str, dict[str, Any]]:
        """Fetch prices via ``/simple/price``.

        Returns:
            Mapping of coin id to its fields, e.g.
            ``{"bitcoin": {"usd": 1.0, "usd_market_cap": ..., "usd_24h_vol": ...,
            "usd_24h_change": ..., "last_updated_at": 1700000000}}``

        Raises:
            MarketDataError: on transport errors, non-2xx status, or a body that is not a JSON object.
        """
        params = {
            "ids": ",".join(ids),
            "vs_currencies": ",".join(vs_currencies),
            "include_market_cap": "true",
            "include_24hr_vol": "true",
            "include_24hr_change": "true",
            "include_last_updated_at": "true",
        }

        try:
            response = self.session.get(f"{self.base_url}/simple/price", params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("CoinGecko API request failed: %s", exc)
            raise MarketDataError(f"CoinGecko API request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise MarketDataError(f"CoinGecko API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("CoinGecko returned a non-JSON body (status %s)", response.status_code)
            raise MarketDataError("CoinGecko returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise MarketDataError(f"Unexpected CoinGecko response format: {type(data).__name__}")

        logger.info("Fetched %d prices from CoinGecko", len(data))
        return data
