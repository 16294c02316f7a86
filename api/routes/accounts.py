"""Paper trading account endpoints."""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel, Field

from api.deps import Services, get_services, get_user_id
from core.accounts import ACCOUNT_TEMPLATES, AccountNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])


class CreateAccountRequest(BaseModel):
    account_name: str = Field(..., min_length=1)
    account_type: Optional[str] = None
    risk_level: Optional[str] = None
    initial_balance: Optional[float] = Field(None, gt=0)
    max_daily_loss: Optional[float] = Field(None, gt=0)
    max_position_size: Optional[float] = Field(None, gt=0)
    max_drawdown_limit: Optional[float] = Field(None, gt=0, le=100)
    trading_strategy: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class TemplateAccountRequest(BaseModel):
    template_id: str
    account_name: str = Field(..., min_length=1)
    custom_balance: Optional[float] = Field(None, gt=0)


class UpdateAccountRequest(BaseModel):
    account_name: Optional[str] = Field(None, min_length=1)
    account_type: Optional[str] = None
    risk_level: Optional[str] = None
    max_daily_loss: Optional[float] = Field(None, gt=0)
    max_position_size: Optional[float] = Field(None, gt=0)
    max_drawdown_limit: Optional[float] = Field(None, gt=0, le=100)
    trading_strategy: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[Literal["active", "paused", "emergency_stop"]] = None


class ResetAccountRequest(BaseModel):
    reset_to_balance: Optional[float] = Field(None, gt=0)


def _not_found(account_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"error": "not_found", "message": f"Account {account_id} not found"},
    )


@router.get("")
def list_accounts(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return {"accounts": services.accounts.list_accounts(user_id)}


@router.post("", status_code=201)
def create_account(
    payload: CreateAccountRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    account = services.accounts.create_custom_account(user_id, payload.model_dump(exclude_none=True))
    return {"success": True, "account": account}


@router.get("/templates")
def list_templates() -> dict[str, Any]:
    return {"templates": [t.to_dict() for t in ACCOUNT_TEMPLATES.values()]}


@router.post("/from-template", status_code=201)
def create_from_template(
    payload: TemplateAccountRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    try:
        account = services.accounts.create_account_from_template(
            user_id,
            payload.template_id,
            payload.account_name,
            payload.custom_balance,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"error": "invalid_template", "message": str(exc)}) from exc
    return {"success": True, "account": account}


@router.get("/summary")
def account_summary(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    summary = services.accounts.get_account_summary(user_id)
    return {
        "total_value": summary.total_value,
        "total_pnl": summary.total_pnl,
        "total_pnl_percentage": summary.total_pnl_percentage,
        "active_accounts": summary.active_accounts,
        "best_performing_account": summary.best_performing_account,
        "worst_performing_account": summary.worst_performing_account,
    }


@router.post("/reset-all")
def reset_all_accounts(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    result = services.accounts.reset_all_accounts(user_id, delay_seconds=services.config.reset_all_delay_seconds)
    return {"success": result.success, "success_count": result.success_count, "total": result.total}


@router.patch("/{account_id}")
def update_account(
    payload: UpdateAccountRequest,
    account_id: str = Path(..., description="Account ID"),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    updates = payload.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail={"error": "empty_update", "message": "No fields to update"})
    try:
        account = services.accounts.update_account(user_id, account_id, updates)
    except AccountNotFoundError as exc:
        raise _not_found(account_id) from exc
    return {"success": True, "account": account}


@router.delete("/{account_id}")
def delete_account(
    account_id: str = Path(..., description="Account ID"),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    try:
        services.accounts.delete_account(user_id, account_id)
    except AccountNotFoundError as exc:
        raise _not_found(account_id) from exc
    return {"success": True}


@router.post("/{account_id}/switch")
def switch_account(
    account_id: str = Path(..., description="Account ID"),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    try:
        account = services.accounts.switch_account(user_id, account_id)
    except AccountNotFoundError as exc:
        raise _not_found(account_id) from exc
    return {"success": True, "account": account}


@router.post("/{account_id}/reset")
def reset_account(
    payload: Optional[ResetAccountRequest] = None,
    account_id: str = Path(..., description="Account ID"),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    reset_to = payload.reset_to_balance if payload else None
    try:
        outcome = services.accounts.reset_account(user_id, account_id, reset_to)
    except AccountNotFoundError as exc:
        raise _not_found(account_id) from exc
    return {"success": True, **outcome}


@router.get("/{account_id}/portfolio-value")
def portfolio_value(
    account_id: str = Path(..., description="Account ID"),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    try:
        account = services.accounts.get_account(user_id, account_id)
    except AccountNotFoundError as exc:
        raise _not_found(account_id) from exc
    holdings_value = services.paper.calculate_portfolio_value(user_id, account_id)
    return {
        "account_id": account_id,
        "cash_balance": account["balance"],
        "holdings_value": holdings_value,
        "total_value": account["balance"] + holdings_value,
    }
