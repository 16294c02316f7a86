"""SQLAlchemy models for cached market and sentiment data.

- market_data_cache
- social_sentiment
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, Integer, Text, UniqueConstraint

from db.models.base import Base, JSONType, new_id, utcnow


class MarketDataCache(Base):
    """Latest quote per coin, rewritten on every market data refresh.

    Table: market_data_cache
    """

    __tablename__ = "market_data_cache"

    id = Column(Text, primary_key=True, default=new_id)
    symbol = Column(Text, nullable=False, unique=True)  # e.g. BTC
    name = Column(Text, nullable=False)  # e.g. bitcoin
    price_usd = Column(Float, nullable=True)
    price_aud = Column(Float, nullable=True)
    volume_24h_usd = Column(Float, nullable=True)
    volume_24h_aud = Column(Float, nullable=True)
    change_24h = Column(Float, nullable=True)
    change_percentage_24h = Column(Float, nullable=True)
    market_cap_usd = Column(Float, nullable=True)
    market_cap_aud = Column(Float, nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=True)
    exchange = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<MarketDataCache(symbol={self.symbol}, price_usd={self.price_usd})>"


class SocialSentiment(Base):
    """Per-platform sentiment sample for a symbol.

    Table: social_sentiment
    """

    __tablename__ = "social_sentiment"

    id = Column(Text, primary_key=True, default=new_id)
    symbol = Column(Text, nullable=False)
    platform = Column(Text, nullable=False)  # twitter|youtube|reddit|news
    sentiment_score = Column(Float, nullable=False, default=0.0)
    mention_count = Column(Integer, nullable=False, default=0)
    trending_rank = Column(Integer, nullable=True)
    data_timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    raw_data = Column(JSONType, nullable=False, default=dict)

    __table_args__ = (UniqueConstraint("symbol", "platform", "data_timestamp", name="uq_social_sentiment_sample"),)
