"""Shared test fixtures for pytest.

Every test gets a fresh in-memory SQLite database behind the same ``Stores``
class the service uses in production.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api.deps import Services, set_services
from api.main import app
from core.config import AppConfig, DatabaseConfig
from core.market_data import MarketDataService
from core.storage import Stores

TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture
def stores() -> Stores:
    stores = Stores(config=DatabaseConfig(database_url=TEST_DATABASE_URL))
    stores.create_schema()
    return stores


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(database_url=TEST_DATABASE_URL),
        reset_all_delay_seconds=0.0,
    )


@pytest.fixture
def make_account(stores: Stores) -> Callable[..., dict[str, Any]]:
    """Insert a paper trading account row directly."""

    def _make(user_id: str = "user-1", **overrides: Any) -> dict[str, Any]:
        row: dict[str, Any] = {
            "user_id": user_id,
            "account_name": "Main",
            "balance": 100000.0,
            "initial_balance": 100000.0,
            "is_default": True,
        }
        row.update(overrides)
        return stores.insert_rows("paper_trading_accounts", [row])[0]

    return _make


@pytest.fixture
def seed_prices(stores: Stores) -> Callable[..., list[dict[str, Any]]]:
    """Populate market_data_cache with ``SYMBOL=price_usd`` pairs."""

    def _seed(**prices: float) -> list[dict[str, Any]]:
        rows = [
            {
                "symbol": symbol,
                "name": symbol.lower(),
                "price_usd": price,
                "market_cap_usd": price * 1_000_000,
                "exchange": "coingecko",
            }
            for symbol, price in prices.items()
        ]
        return stores.insert_rows("market_data_cache", rows)

    return _seed


@pytest.fixture
def coingecko() -> MagicMock:
    """Stand-in for CoinGeckoClient so no test reaches the network."""
    client = MagicMock()
    client.fetch_simple_prices.return_value = {
        "bitcoin": {"usd": 50000.0, "aud": 75000.0, "usd_market_cap": 1e12, "last_updated_at": 1700000000},
        "ethereum": {"usd": 3000.0, "aud": 4500.0, "usd_market_cap": 4e11, "last_updated_at": 1700000000},
    }
    return client


@pytest.fixture
def services(app_config: AppConfig, stores: Stores, coingecko: MagicMock) -> Services:
    services = Services.from_config(app_config, stores=stores)
    services.market_data = MarketDataService(stores, client=coingecko)
    return services


@pytest.fixture
def client(services: Services) -> Iterator[TestClient]:
    """Test client running the app lifespan against the in-memory services."""
    set_services(services)
    try:
        with TestClient(app) as client:
            yield client
    finally:
        set_services(None)


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-Id": "user-1"}
