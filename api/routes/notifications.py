"""Account notification endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from api.deps import Services, get_services, get_user_id

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_unread(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    notifications = services.notifications.list_unread(user_id, limit=limit)
    return {"notifications": notifications, "count": len(notifications)}


@router.post("/read-all")
def mark_all_read(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return {"success": True, "updated": services.notifications.mark_all_read(user_id)}


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: str = Path(...),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    if not services.notifications.mark_read(user_id, notification_id):
        raise HTTPException(
            status_code=404,
            detail={"error": "not_found", "message": f"Notification {notification_id} not found"},
        )
    return {"success": True}
