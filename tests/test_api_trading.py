"""Tests for the paper trade, trade history and live order endpoints."""

from __future__ import annotations

from core.execution.interfaces import ExchangeCredentials, OrderResult
from core.execution.live import LiveTradingConnector
from core.storage import StoreError


class TestPaperTradeEndpoint:
    def test_buy(self, client, user_headers, make_account, seed_prices):
        make_account()
        seed_prices(BTC=50000.0)

        response = client.post(
            "/functions/paper-trade",
            json={"symbol": "btc", "side": "buy", "amount": 1, "order_type": "market"},
            headers=user_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["trade_id"]
        assert data["new_balance"] == 49950.0
        assert data["trade_value"] == 50000.0
        assert data["fee"] == 50.0
        assert data["message"] == "BUY 1 BTC at $50,000.00"

    def test_insufficient_balance(self, client, user_headers, make_account, seed_prices):
        make_account(balance=100.0)
        seed_prices(BTC=50000.0)

        response = client.post("/functions/paper-trade", json={"symbol": "BTC", "side": "buy", "amount": 1}, headers=user_headers)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"].startswith("Insufficient balance")

    def test_no_price(self, client, user_headers, make_account):
        make_account()
        response = client.post("/functions/paper-trade", json={"symbol": "XYZ", "side": "buy", "amount": 1}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid price for XYZ"

    def test_invalid_payload(self, client, user_headers):
        response = client.post("/functions/paper-trade", json={"symbol": "BTC", "side": "hold", "amount": 1}, headers=user_headers)
        assert response.status_code == 422

    def test_store_failure_is_500(self, client, services, user_headers, make_account, seed_prices, monkeypatch):
        make_account()
        seed_prices(BTC=1.0)

        def broken(**kwargs):
            raise StoreError("OperationalError: database is locked")

        monkeypatch.setattr(services.stores, "execute_paper_trade", broken)
        response = client.post("/functions/paper-trade", json={"symbol": "BTC", "side": "buy", "amount": 1}, headers=user_headers)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Trade execution failed"}

    def test_notification_failure_keeps_trade(self, client, services, user_headers, make_account, seed_prices, monkeypatch):
        make_account()
        seed_prices(BTC=50000.0)

        def broken(**kwargs):
            raise StoreError("OperationalError: no such table: account_notifications")

        monkeypatch.setattr(services.notifications, "create", broken)
        response = client.post("/functions/paper-trade", json={"symbol": "BTC", "side": "buy", "amount": 1}, headers=user_headers)

        assert response.status_code == 200
        assert response.json()["new_balance"] == 49950.0
        assert len(services.stores.select_rows("paper_trades", filters={"user_id": "user-1"})) == 1

    def test_requires_user(self, client):
        response = client.post("/functions/paper-trade", json={"symbol": "BTC", "side": "buy", "amount": 1})
        assert response.status_code == 401


def test_trade_history(client, user_headers, make_account, seed_prices):
    account = make_account()
    seed_prices(BTC=100.0)
    for _ in range(3):
        client.post("/functions/paper-trade", json={"symbol": "BTC", "side": "buy", "amount": 1}, headers=user_headers)

    data = client.get("/trades", params={"account_id": account["id"], "limit": 2}, headers=user_headers).json()

    assert data["count"] == 2
    assert all(t["symbol"] == "BTC" for t in data["trades"])


class FakeAdapter:
    async def create_order(self, **kwargs):
        return OrderResult(id="ord-9", status="closed", filled=kwargs["amount"], remaining=0.0, average=100.0, cost=100.0)


class TestLiveTradingEndpoint:
    def _install(self, services, *, credentials=True):
        creds = ExchangeCredentials(api_key="k", api_secret="s")
        services.live = LiveTradingConnector(
            services.stores,
            adapter_factory=lambda *args: FakeAdapter(),
            credentials_lookup=lambda exchange: creds if credentials else None,
        )

    def test_success(self, client, services, user_headers, make_account):
        self._install(services)
        account = make_account()

        response = client.post(
            "/functions/live-trading-connector",
            json={
                "exchange": "binance",
                "symbol": "BTC/USDT",
                "side": "buy",
                "amount": 1,
                "price": 100,
                "orderType": "limit",
                "accountId": account["id"],
                "stopLoss": 90,
            },
            headers=user_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["result"]["orderId"] == "ord-9"
        assert data["result"]["status"] == "closed"

    def test_rejection_carries_code(self, client, services, user_headers, make_account):
        self._install(services, credentials=False)
        account = make_account()

        response = client.post(
            "/functions/live-trading-connector",
            json={"exchange": "kraken", "symbol": "BTC/USD", "side": "sell", "amount": 1, "accountId": account["id"]},
            headers=user_headers,
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "NO_EXCHANGE_CONNECTION"
