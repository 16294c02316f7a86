"""Mock realtime market feed.

Emits randomly generated price ticks, trading signals and risk alerts. No
real market data flows through here; it exists so dashboard widgets have a
socket to listen to.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import random
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

FEED_SYMBOLS: tuple[str, ...] = ("BTC", "ETH", "SOL", "ADA", "DOT")

SIGNAL_PROBABILITY = 0.3
RISK_ALERT_PROBABILITY = 0.2
RISK_THRESHOLD = 75

SendJson = Callable[[dict[str, Any]], Awaitable[None]]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class MockMarketFeed:
    def __init__(
        self,
        *,
        symbols: Sequence[str] = FEED_SYMBOLS,
        interval_seconds: float = 5.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.symbols = tuple(symbols)
        self.interval_seconds = interval_seconds
        self._rng = rng or random.Random()

    def price_update(self, symbol: str) -> dict[str, Any]:
        rng = self._rng
        return {
            "type": "price_update",
            "symbol": symbol,
            "price": f"{rng.random() * 50000 + 30000:.2f}",
            "change_24h": (rng.random() - 0.5) * 10,
            "volume": rng.random() * 1_000_000_000,
            "timestamp": _timestamp(),
        }

    def snapshot(self) -> list[dict[str, Any]]:
        return [self.price_update(symbol) for symbol in self.symbols]

    def trading_signal(self) -> dict[str, Any]:
        rng = self._rng
        return {
            "type": "trading_signal",
            "symbol": rng.choice(self.symbols),
            "signal_type": "buy" if rng.random() > 0.5 else "sell",
            "strength": rng.randrange(100),
            "confidence": rng.randrange(100),
            "price_target": rng.random() * 60000 + 40000,
            "source": "AI Analysis",
            "timestamp": _timestamp(),
        }

    def risk_alert(self) -> dict[str, Any]:
        rng = self._rng
        return {
            "type": "risk_alert",
            "risk_type": "position_concentration",
            "risk_level": rng.choice(("low", "medium", "high")),
            "current_value": rng.random() * 100,
            "threshold_value": RISK_THRESHOLD,
            "message": "Portfolio concentration exceeding limits",
            "timestamp": _timestamp(),
        }

    def tick(self) -> list[dict[str, Any]]:
        """Messages for one interval: all prices, then an occasional signal/alert."""
        messages = self.snapshot()
        if self._rng.random() < SIGNAL_PROBABILITY:
            messages.append(self.trading_signal())
        if self._rng.random() < RISK_ALERT_PROBABILITY:
            messages.append(self.risk_alert())
        return messages

    def handle_message(self, raw: str) -> dict[str, Any]:
        """Reply to a client message."""
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Invalid feed message: %r", raw[:200])
            return {"type": "error", "message": "Invalid message format", "timestamp": _timestamp()}

        if not isinstance(message, dict):
            return {"type": "error", "message": "Invalid message format", "timestamp": _timestamp()}

        message_type = message.get("type")
        if message_type == "subscribe":
            return {
                "type": "subscription_confirmed",
                "symbols": message.get("symbols") or list(self.symbols),
                "timestamp": _timestamp(),
            }
        if message_type == "trade_executed":
            return {
                "type": "trade_confirmation",
                "trade_id": message.get("trade_id"),
                "status": "executed",
                "timestamp": _timestamp(),
            }
        return {"type": "error", "message": "Unknown message type", "timestamp": _timestamp()}

    async def stream(self, send: SendJson, stop_event: asyncio.Event) -> None:
        """Send the initial snapshot, then a tick every interval until stopped."""
        for message in self.snapshot():
            await send(message)

        while not stop_event.is_set():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            if stop_event.is_set():
                break
            for message in self.tick():
                await send(message)
