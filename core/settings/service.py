from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from core.storage import Stores

logger = logging.getLogger(__name__)

TABLE = "user_settings"


class SettingsService:
    """Named JSON settings per user (one row per ``setting_name``)."""

    def __init__(self, stores: Stores) -> None:
        self._stores = stores

    def load_settings(self, user_id: str, names: Optional[Iterable[str]] = None) -> dict[str, Any]:
        filters: dict[str, Any] = {"user_id": user_id}
        if names is not None:
            filters["setting_name"] = list(names)
        rows = self._stores.select_rows(TABLE, filters=filters)
        return {row["setting_name"]: row["setting_value"] for row in rows}

    def update_setting(self, user_id: str, name: str, value: Any) -> dict[str, Any]:
        if not name:
            raise ValueError("setting name is required")
        row = self._stores.upsert_rows(
            TABLE,
            [
                {
                    "user_id": user_id,
                    "setting_name": name,
                    "setting_value": value,
                    "updated_at": datetime.now(timezone.utc),
                }
            ],
            conflict_columns=("user_id", "setting_name"),
        )[0]
        logger.debug("Setting %s updated for user %s", name, user_id)
        return row
