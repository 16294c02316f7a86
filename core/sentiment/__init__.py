from core.sentiment.monitor import SENTIMENT_SYMBOLS, SocialSentimentMonitor

__all__ = ["SENTIMENT_SYMBOLS", "SocialSentimentMonitor"]
