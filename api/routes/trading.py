"""Paper trade, trade history and live order endpoints."""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.deps import Services, get_services, get_user_id
from core.execution.live import LiveTradeRequest, LiveTradingError
from core.execution.paper import TradeError, describe_trade
from core.storage import StoreError
from core.types import TradeRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trading"])


class PaperTradePayload(BaseModel):
    symbol: str = Field(..., min_length=1)
    side: Literal["buy", "sell"]
    amount: float = Field(..., gt=0)
    order_type: Literal["market", "limit", "stop"] = "market"
    price: Optional[float] = None
    account_id: Optional[str] = None
    trade_type: Optional[Literal["market", "limit", "stop"]] = None
    stop_loss: Optional[float] = Field(None, gt=0)
    take_profit: Optional[float] = Field(None, gt=0)
    reasoning: Optional[str] = None


class LiveTradePayload(BaseModel):
    exchange: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    side: Literal["buy", "sell"]
    amount: float = Field(..., gt=0)
    price: Optional[float] = Field(None, gt=0)
    orderType: Literal["market", "limit", "stop"] = "market"
    accountId: str = Field(..., min_length=1)
    stopLoss: Optional[float] = Field(None, gt=0)
    takeProfit: Optional[float] = Field(None, gt=0)
    leverage: Optional[float] = Field(None, gt=0)


def _failure(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


@router.post("/functions/paper-trade")
def paper_trade(
    payload: PaperTradePayload,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> Any:
    request = TradeRequest(**payload.model_dump())
    try:
        result = services.paper.execute(user_id, request)
    except TradeError as exc:
        return _failure(400 if exc.is_validation else 500, str(exc))
    except StoreError as exc:
        logger.error("Error executing paper trade: %s", exc)
        return _failure(500, "Trade execution failed")

    return {
        "success": True,
        "trade_id": result.trade_id,
        "new_balance": result.new_balance,
        "trade_value": result.trade_value,
        "fee": result.fee,
        "message": describe_trade(payload.side, payload.amount, payload.symbol.upper(), result.price or 0.0),
    }


@router.get("/trades")
def trade_history(
    account_id: Optional[str] = Query(None, description="Limit to one account"),
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    trades = services.paper.get_trade_history(user_id, account_id=account_id, limit=limit)
    return {"trades": trades, "count": len(trades)}


@router.post("/functions/live-trading-connector")
async def live_trading_connector(
    payload: LiveTradePayload,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
) -> Any:
    request = LiveTradeRequest(
        exchange=payload.exchange,
        symbol=payload.symbol,
        side=payload.side,
        amount=payload.amount,
        account_id=payload.accountId,
        order_type=payload.orderType,
        price=payload.price,
        stop_loss=payload.stopLoss,
        take_profit=payload.takeProfit,
        leverage=payload.leverage,
    )
    try:
        return await services.live.execute(user_id, request)
    except LiveTradingError as exc:
        return _failure(400, str(exc), code=exc.code)
