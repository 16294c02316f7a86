"""Service wiring shared by the routers.

Services are built once from ``AppConfig.from_env()``; tests install their own
with ``set_services``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Header, HTTPException

from core.accounts import AccountService
from core.ai import ChatAssistant
from core.config import AppConfig
from core.execution.live import LiveTradingConnector
from core.execution.paper import PaperTradeExecutor
from core.health import HealthChecker
from core.market_data import MarketDataService, MockMarketFeed
from core.notifications import ChangeFeed, NotificationService
from core.sentiment import SocialSentimentMonitor
from core.settings import SettingsService
from core.storage import Stores

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: AppConfig
    stores: Stores
    accounts: AccountService
    notifications: NotificationService
    paper: PaperTradeExecutor
    settings: SettingsService
    market_data: MarketDataService
    sentiment: SocialSentimentMonitor
    assistant: ChatAssistant
    live: LiveTradingConnector
    health: HealthChecker
    change_feed: ChangeFeed = field(default_factory=ChangeFeed)

    @classmethod
    def from_config(cls, config: AppConfig, *, stores: Optional[Stores] = None) -> "Services":
        stores = stores or Stores(config=config.database)
        notifications = NotificationService(stores)
        return cls(
            config=config,
            stores=stores,
            accounts=AccountService(stores),
            notifications=notifications,
            paper=PaperTradeExecutor(stores, fee_rate=config.fee_rate, notifications=notifications),
            settings=SettingsService(stores),
            market_data=MarketDataService(stores),
            sentiment=SocialSentimentMonitor(stores),
            assistant=ChatAssistant(),
            live=LiveTradingConnector(stores, dry_run=config.live_trading_dry_run),
            health=HealthChecker(stores),
        )

    def market_feed(self) -> MockMarketFeed:
        return MockMarketFeed(interval_seconds=self.config.market_feed_interval_seconds)


_services: Services | None = None


def get_services() -> Services:
    """Get or initialize the service container."""
    global _services
    if _services is None:
        _services = Services.from_config(AppConfig.from_env())
    return _services


def set_services(services: Services | None) -> None:
    global _services
    _services = services


def get_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    """Caller identity from the ``X-User-Id`` header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=401,
            detail={"error": "unauthorized", "message": "X-User-Id header is required"},
        )
    return x_user_id.strip()
