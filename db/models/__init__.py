"""SQLAlchemy models for the paper trading database."""

from db.models.base import Base
from db.models.market import MarketDataCache, SocialSentiment
from db.models.trading import PaperAccountAudit, PaperTrade, PaperTradingAccount
from db.models.user import AccountNotification, UserSetting

__all__ = [
    "Base",
    "AccountNotification",
    "MarketDataCache",
    "PaperAccountAudit",
    "PaperTrade",
    "PaperTradingAccount",
    "SocialSentiment",
    "UserSetting",
]
