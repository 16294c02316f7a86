"""Account notifications and the table change channel."""

from core.notifications.feed import ChangeFeed
from core.notifications.service import NotificationService

__all__ = ["ChangeFeed", "NotificationService"]
