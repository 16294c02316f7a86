"""Tests for the market feed and table change WebSocket routes."""

from __future__ import annotations

import pytest
from starlette.websockets import WebSocketDisconnect

from core.market_data import FEED_SYMBOLS


class TestMarketFeedSocket:
    def test_plain_http_is_rejected(self, client):
        response = client.get("/ws/market-feed")
        assert response.status_code == 400
        assert response.text == "Expected WebSocket connection"

    def test_snapshot_then_replies(self, client):
        with client.websocket_connect("/ws/market-feed") as websocket:
            snapshot = [websocket.receive_json() for _ in FEED_SYMBOLS]
            assert [m["symbol"] for m in snapshot] == list(FEED_SYMBOLS)
            assert all(m["type"] == "price_update" for m in snapshot)

            websocket.send_json({"type": "subscribe", "symbols": ["BTC"]})
            reply = websocket.receive_json()
            assert reply["type"] == "subscription_confirmed"
            assert reply["symbols"] == ["BTC"]

            websocket.send_text("not json")
            assert websocket.receive_json()["message"] == "Invalid message format"


class TestChangesSocket:
    def test_requires_user(self, client):
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect("/ws/changes") as websocket:
                websocket.receive_json()
        assert excinfo.value.code == 1008

    def test_ping_and_subscribe(self, client):
        with client.websocket_connect("/ws/changes?user_id=user-1") as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

            websocket.send_json({"action": "subscribe", "tables": ["paper_trades", "paper_trading_accounts"]})
            assert websocket.receive_json() == {
                "type": "subscribed",
                "tables": ["paper_trades", "paper_trading_accounts"],
            }

            websocket.send_text("{broken")
            assert websocket.receive_json()["type"] == "error"

    def test_receives_own_account_changes(self, client, user_headers):
        with client.websocket_connect(
            "/ws/changes?tables=paper_trading_accounts", headers={"x-user-id": "user-1"}
        ) as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

            client.post("/accounts", json={"account_name": "Other"}, headers={"X-User-Id": "user-2"})
            created = client.post("/accounts", json={"account_name": "Mine"}, headers=user_headers).json()["account"]

            message = websocket.receive_json()
            assert message["type"] == "postgres_changes"
            assert message["table"] == "paper_trading_accounts"
            assert message["eventType"] == "INSERT"
            assert message["new"]["id"] == created["id"]
