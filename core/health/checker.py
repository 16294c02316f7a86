"""Health check logic for system components."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from core.storage import Stores, StoreError

# Cached quotes older than this are reported as stale.
MARKET_DATA_MAX_AGE = timedelta(minutes=15)


@dataclass
class HealthStatus:
    """Health status for a component."""

    status: Literal["ok", "degraded", "error"]
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: Optional[dict] = None


class HealthChecker:
    """Health checker for system components."""

    def __init__(self, stores: Stores):
        self._stores = stores

    def check_database(self) -> HealthStatus:
        """Check database connectivity and measure latency."""
        try:
            latency_ms = self._stores.ping()
        except StoreError as exc:
            return HealthStatus(status="error", message=str(exc))
        return HealthStatus(status="ok", latency_ms=latency_ms, message="Database connected")

    def check_market_data(self) -> HealthStatus:
        """Report how fresh the market data cache is."""
        try:
            rows = self._stores.select_rows(
                "market_data_cache", order_by="last_updated", descending=True, limit=1
            )
        except StoreError as exc:
            return HealthStatus(status="degraded", message="Cannot read market data cache", details={"error": str(exc)})

        if not rows or not rows[0].get("last_updated"):
            return HealthStatus(status="degraded", message="Market data cache is empty")

        last_updated = datetime.fromisoformat(rows[0]["last_updated"])
        age = datetime.now(timezone.utc) - last_updated
        details = {"last_updated": rows[0]["last_updated"], "age_seconds": int(age.total_seconds())}
        if age > MARKET_DATA_MAX_AGE:
            return HealthStatus(status="degraded", message="Market data is stale", details=details)
        return HealthStatus(status="ok", message="Market data fresh", details=details)

    def check_all(self) -> dict[str, HealthStatus]:
        """Check all system components."""
        return {
            "database": self.check_database(),
            "market_data": self.check_market_data(),
        }
