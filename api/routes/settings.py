"""User settings endpoints."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel

from api.deps import Services, get_services, get_user_id

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingValue(BaseModel):
    value: Any = None


@router.get("")
def load_settings(
    names: Optional[str] = Query(None, description="Comma-separated setting names"),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    wanted = [n.strip() for n in names.split(",") if n.strip()] if names else None
    return {"settings": services.settings.load_settings(user_id, wanted)}


@router.get("/{name}")
def get_setting(
    name: str = Path(..., min_length=1),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    settings = services.settings.load_settings(user_id, [name])
    if name not in settings:
        raise HTTPException(
            status_code=404,
            detail={"error": "not_found", "message": f"Setting {name} not found"},
        )
    return {"setting_name": name, "setting_value": settings[name]}


@router.put("/{name}")
def update_setting(
    payload: SettingValue,
    name: str = Path(..., min_length=1),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    row = services.settings.update_setting(user_id, name, payload.value)
    return {"success": True, "setting_name": row["setting_name"], "setting_value": row["setting_value"]}
