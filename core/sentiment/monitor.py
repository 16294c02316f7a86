"""Social sentiment sampling.

Platform collectors generate synthetic samples; no social network APIs are
called. Each platform has its own mention/rank ranges and ``raw_data`` shape.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from core.storage import Stores

logger = logging.getLogger(__name__)

SENTIMENT_SYMBOLS: tuple[str, ...] = ("BTC", "ETH", "SOL", "ADA", "DOT", "LINK", "UNI", "AVAX")

TABLE = "social_sentiment"

Collector = Callable[[random.Random, str], tuple[int, int, dict[str, Any]]]


def _twitter(rng: random.Random, symbol: str) -> tuple[int, int, dict[str, Any]]:
    return (
        rng.randrange(1000),
        rng.randrange(50) + 1,
        {
            "recent_tweets": [
                f"{symbol} to the moon!",
                f"{symbol} looking bullish today",
                f"Great analysis on {symbol} fundamentals",
            ],
            "influencer_mentions": rng.randrange(10),
            "hashtag_volume": rng.randrange(500),
        },
    )


def _youtube(rng: random.Random, symbol: str) -> tuple[int, int, dict[str, Any]]:
    return (
        rng.randrange(100),
        rng.randrange(30) + 1,
        {
            "recent_videos": [
                f"{symbol} Technical Analysis - HUGE BREAKOUT INCOMING!",
                f"Why {symbol} Will 10x",
                f"{symbol} Price Prediction - My Honest Opinion",
            ],
            "top_channels": ["CryptoBeastYT", "BlockchainAnalyst", "CoinGuru"],
            "total_views": rng.randrange(1_000_000),
            "avg_sentiment": rng.uniform(-1, 1),
        },
    )


def _reddit(rng: random.Random, symbol: str) -> tuple[int, int, dict[str, Any]]:
    return (
        rng.randrange(200),
        rng.randrange(40) + 1,
        {
            "hot_posts": [
                f"{symbol} daily discussion thread",
                f"{symbol} fundamentals are insane",
                f"Just bought more {symbol}, AMA",
            ],
            "subreddits": [f"r/{symbol}", "r/cryptocurrency", "r/CryptoMarkets"],
            "upvote_ratio": rng.random(),
            "comment_sentiment": rng.uniform(-1, 1),
        },
    )


def _news(rng: random.Random, symbol: str) -> tuple[int, int, dict[str, Any]]:
    return (
        rng.randrange(50),
        rng.randrange(20) + 1,
        {
            "headlines": [
                f"{symbol} Surges 15% Following Major Partnership Announcement",
                f"Institutional Adoption of {symbol} Continues to Grow",
                f"{symbol} Technical Analysis: Key Levels to Watch",
            ],
            "sources": ["CoinDesk", "Cointelegraph", "The Block", "Decrypt"],
            "sentiment_distribution": {
                "positive": rng.random(),
                "neutral": rng.random(),
                "negative": rng.random(),
            },
        },
    )


COLLECTORS: dict[str, Collector] = {
    "twitter": _twitter,
    "youtube": _youtube,
    "reddit": _reddit,
    "news": _news,
}


class SocialSentimentMonitor:
    def __init__(self, stores: Stores, *, rng: Optional[random.Random] = None) -> None:
        self._stores = stores
        self._rng = rng or random.Random()

    def collect(self, symbols: Iterable[str], *, now: Optional[datetime] = None) -> list[dict[str, Any]]:
        """One record per (platform, symbol), grouped by platform."""
        timestamp = now or datetime.now(timezone.utc)
        symbols = list(symbols)
        records = []
        for platform, collector in COLLECTORS.items():
            for symbol in symbols:
                mentions, rank, raw = collector(self._rng, symbol)
                records.append(
                    {
                        "symbol": symbol,
                        "platform": platform,
                        "sentiment_score": self._rng.uniform(-1, 1),
                        "mention_count": mentions,
                        "trending_rank": rank,
                        "data_timestamp": timestamp,
                        "raw_data": raw,
                    }
                )
        return records

    def run(self, symbols: Iterable[str] = SENTIMENT_SYMBOLS) -> dict[str, Any]:
        records = self.collect(symbols)
        saved = self._stores.upsert_rows(
            TABLE,
            records,
            conflict_columns=("symbol", "platform", "data_timestamp"),
        )
        logger.info("Stored %d social sentiment records", len(saved))
        return {"success": True, "processed": len(saved), "data": saved}
