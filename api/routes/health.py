"""Health check API endpoint."""

from __future__ import annotations

import asyncio
import time
from typing import Any

from fastapi import APIRouter, Depends

from api.deps import Services, get_services

router = APIRouter(prefix="/health", tags=["health"])

# Track API start time
_api_start_time = time.time()


@router.get("")
async def health_check(services: Services = Depends(get_services)) -> dict[str, Any]:
    """Get system health status.

    Returns health status for:
    - Database connectivity and latency
    - Market data cache freshness
    - API uptime
    """
    # Run blocking DB checks in thread pool to avoid blocking event loop
    checks = await asyncio.to_thread(services.health.check_all)

    result: dict[str, Any] = {
        "api": {
            "status": "ok",
            "uptime_seconds": int(time.time() - _api_start_time),
            "message": "API running",
        }
    }

    for component, status in checks.items():
        result[component] = {"status": status.status, "message": status.message}
        if status.latency_ms is not None:
            result[component]["latency_ms"] = status.latency_ms
        if status.details:
            result[component]["details"] = status.details

    # Overall status is worst of all components
    all_statuses = [result["api"]["status"]] + [v.status for v in checks.values()]
    if "error" in all_statuses:
        overall_status = "error"
    elif "degraded" in all_statuses:
        overall_status = "degraded"
    else:
        overall_status = "ok"

    result["overall"] = {"status": overall_status}
    return result
