"""Per-account notifications stored in ``account_notifications``."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from core.storage import Stores

logger = logging.getLogger(__name__)

Severity = Literal["info", "success", "warning", "error"]

TABLE = "account_notifications"


def _is_expired(row: dict[str, Any], now: datetime) -> bool:
    expires_at = row.get("expires_at")
    if not expires_at:
        return False
    return datetime.fromisoformat(expires_at) <= now


class NotificationService:
    """Create and read per-account notifications for a user."""

    def __init__(self, stores: Stores) -> None:
        self._stores = stores

    def create(
        self,
        *,
        user_id: str,
        account_id: Optional[str],
        notification_type: str,
        title: str,
        message: str,
        severity: Severity = "info",
        metadata: Optional[dict[str, Any]] = None,
        expires_at: Optional[datetime] = None,
    ) -> dict[str, Any]:
        row = {
            "user_id": user_id,
            "account_id": account_id,
            "notification_type": notification_type,
            "title": title,
            "message": message,
            "severity": severity,
            "metadata": metadata or {},
            "expires_at": expires_at,
        }
        created = self._stores.insert_rows(TABLE, [row])[0]
        logger.info("Notification created: type=%s account=%s", notification_type, account_id)
        return created

    def list_unread(self, user_id: str, *, limit: int = 50) -> list[dict[str, Any]]:
        """Unread, unexpired notifications, newest first."""
        rows = self._stores.select_rows(
            TABLE,
            filters={"user_id": user_id, "is_read": False},
            order_by="created_at",
            descending=True,
        )
        now = datetime.now(timezone.utc)
        return [row for row in rows if not _is_expired(row, now)][:limit]

    def mark_read(self, user_id: str, notification_id: str) -> bool:
        updated = self._stores.update_rows(
            TABLE,
            filters={"id": notification_id, "user_id": user_id},
            values={"is_read": True},
        )
        return bool(updated)

    def mark_all_read(self, user_id: str) -> int:
        updated = self._stores.update_rows(
            TABLE,
            filters={"user_id": user_id, "is_read": False},
            values={"is_read": True},
        )
        return len(updated)
