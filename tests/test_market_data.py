"""Tests for the market data cache, background refresher and mock feed."""

from __future__ import annotations

import asyncio
import json
import random
from unittest.mock import MagicMock, patch

import pytest

from core.market_data import (
    FALLBACK_PRICES,
    FEED_SYMBOLS,
    CoinGeckoClient,
    MarketDataError,
    MarketDataRefresher,
    MarketDataService,
    MockMarketFeed,
)

SAMPLE_QUOTES = {
    "bitcoin": {
        "usd": 50000.0,
        "aud": 75000.0,
        "usd_market_cap": 1e12,
        "usd_24h_vol": 3e10,
        "usd_24h_change": 2.5,
        "last_updated_at": 1700000000,
    },
    "ethereum": {"usd": 3000.0, "aud": 4500.0, "usd_market_cap": 4e11},
}


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.fetch_simple_prices.return_value = SAMPLE_QUOTES
    return client


@pytest.fixture
def service(stores, client) -> MarketDataService:
    return MarketDataService(stores, client=client)


# ============================================================================
# MarketDataService
# ============================================================================


class TestRefresh:
    def test_refresh_rewrites_cache(self, stores, service, seed_prices):
        seed_prices(DOGE=0.1)

        result = service.refresh()

        assert result == {"success": True, "message": "Market data updated successfully", "count": 2}
        rows = {r["symbol"]: r for r in stores.select_rows("market_data_cache")}
        assert set(rows) == {"BTC", "ETH"}
        assert rows["BTC"]["name"] == "bitcoin"
        assert rows["BTC"]["price_aud"] == 75000.0
        assert rows["BTC"]["change_percentage_24h"] == 2.5
        assert rows["BTC"]["exchange"] == "coingecko"
        assert rows["BTC"]["last_updated"].startswith("2023-11-14")

    def test_failed_fetch_leaves_cache(self, stores, service, client, seed_prices):
        seed_prices(BTC=1.0)
        client.fetch_simple_prices.side_effect = MarketDataError("CoinGecko API error: 500")

        with pytest.raises(MarketDataError):
            service.refresh()

        assert [r["symbol"] for r in stores.select_rows("market_data_cache")] == ["BTC"]


class TestGetPrices:
    def test_orders_by_market_cap(self, service):
        service.refresh()
        prices = service.get_prices()
        cached = [p["symbol"] for p in prices if p["exchange"] == "coingecko"]
        assert cached == ["BTC", "ETH"]

    def test_fallback_for_missing_symbols(self, service, seed_prices):
        seed_prices(BTC=50000.0)

        prices = service.get_prices(["btc", "sol", "nope"])

        by_symbol = {p["symbol"]: p for p in prices}
        assert set(by_symbol) == {"BTC", "SOL"}
        assert by_symbol["SOL"]["price_usd"] == FALLBACK_PRICES["SOL"]
        assert by_symbol["SOL"]["exchange"] == "fallback"

    def test_zero_price_replaced_by_fallback(self, stores, service, seed_prices):
        seed_prices(ETH=3000.0)
        stores.update_rows("market_data_cache", filters={"symbol": "ETH"}, values={"price_usd": 0.0})

        prices = service.get_prices(["ETH"])

        assert prices == [
            {
                "symbol": "ETH",
                "name": "ETH",
                "price_usd": FALLBACK_PRICES["ETH"],
                "change_percentage_24h": 0.0,
                "exchange": "fallback",
            }
        ]

    def test_empty_cache_returns_all_fallbacks(self, service):
        prices = service.get_prices()
        assert {p["symbol"] for p in prices} == set(FALLBACK_PRICES)


# ============================================================================
# MarketDataRefresher
# ============================================================================


def test_refresher_rejects_bad_interval(service):
    with pytest.raises(ValueError):
        MarketDataRefresher(service, interval_seconds=0)


@pytest.mark.asyncio
async def test_refresher_runs_until_stopped(service, client):
    refresher = MarketDataRefresher(service, interval_seconds=0.01)
    refresher.start()
    assert refresher.running

    for _ in range(100):
        if refresher.runs >= 2:
            break
        await asyncio.sleep(0.01)
    await refresher.stop()

    assert refresher.runs >= 2
    assert not refresher.running
    assert client.fetch_simple_prices.call_count >= 2


@pytest.mark.asyncio
async def test_refresher_survives_fetch_errors(service, client):
    client.fetch_simple_prices.side_effect = MarketDataError("down")
    refresher = MarketDataRefresher(service, interval_seconds=0.01)
    refresher.start()

    for _ in range(100):
        if refresher.runs >= 2:
            break
        await asyncio.sleep(0.01)
    await refresher.stop()

    assert refresher.runs >= 2


@pytest.mark.asyncio
async def test_refresher_survives_non_json_body(stores):
    response = MagicMock(status_code=200)
    response.json.side_effect = ValueError("Expecting value")
    with patch("core.market_data.coingecko.requests.Session") as session_class:
        session_class.return_value.get.return_value = response
        service = MarketDataService(stores, client=CoinGeckoClient())

    refresher = MarketDataRefresher(service, interval_seconds=0.01)
    refresher.start()

    for _ in range(100):
        if refresher.runs >= 2:
            break
        await asyncio.sleep(0.01)
    running = refresher.running
    await refresher.stop()

    assert running
    assert refresher.runs >= 2


# ============================================================================
# MockMarketFeed
# ============================================================================


class TestMockMarketFeed:
    def test_price_update_shape(self):
        feed = MockMarketFeed(rng=random.Random(7))
        update = feed.price_update("BTC")

        assert update["type"] == "price_update"
        assert update["symbol"] == "BTC"
        assert isinstance(update["price"], str)
        assert 30000 <= float(update["price"]) <= 80000
        assert -5 <= update["change_24h"] <= 5

    def test_snapshot_covers_symbols(self):
        feed = MockMarketFeed(rng=random.Random(1))
        assert [m["symbol"] for m in feed.snapshot()] == list(FEED_SYMBOLS)

    def test_tick_with_signal_and_alert(self):
        rng = MagicMock()
        rng.random.return_value = 0.1
        rng.choice.side_effect = lambda seq: seq[0]
        rng.randrange.return_value = 42
        feed = MockMarketFeed(symbols=("BTC",), rng=rng)

        types = [m["type"] for m in feed.tick()]

        assert types == ["price_update", "trading_signal", "risk_alert"]

    def test_tick_prices_only(self):
        rng = MagicMock()
        rng.random.return_value = 0.9
        feed = MockMarketFeed(symbols=("BTC", "ETH"), rng=rng)

        assert [m["type"] for m in feed.tick()] == ["price_update", "price_update"]

    @pytest.mark.parametrize(
        ("raw", "expected_type"),
        [
            (json.dumps({"type": "subscribe", "symbols": ["BTC"]}), "subscription_confirmed"),
            (json.dumps({"type": "trade_executed", "trade_id": "t1"}), "trade_confirmation"),
            (json.dumps({"type": "dance"}), "error"),
            ("{not json", "error"),
            ("[1, 2]", "error"),
        ],
    )
    def test_handle_message(self, raw, expected_type):
        reply = MockMarketFeed().handle_message(raw)
        assert reply["type"] == expected_type
        assert "timestamp" in reply

    def test_subscribe_defaults_to_all_symbols(self):
        reply = MockMarketFeed().handle_message(json.dumps({"type": "subscribe"}))
        assert reply["symbols"] == list(FEED_SYMBOLS)

    def test_trade_confirmation_echoes_id(self):
        reply = MockMarketFeed().handle_message(json.dumps({"type": "trade_executed", "trade_id": "t1"}))
        assert reply == {
            "type": "trade_confirmation",
            "trade_id": "t1",
            "status": "executed",
            "timestamp": reply["timestamp"],
        }

    def test_invalid_json_message(self):
        reply = MockMarketFeed().handle_message("nope")
        assert reply["message"] == "Invalid message format"

    @pytest.mark.asyncio
    async def test_stream_sends_snapshot_then_ticks(self):
        feed = MockMarketFeed(symbols=("BTC", "ETH"), interval_seconds=0.01, rng=random.Random(3))
        stop = asyncio.Event()
        sent: list[dict] = []

        async def send(message):
            sent.append(message)
            if len(sent) >= 4:
                stop.set()

        await asyncio.wait_for(feed.stream(send, stop), timeout=2)

        assert [m["symbol"] for m in sent[:2]] == ["BTC", "ETH"]
        assert len(sent) >= 4
