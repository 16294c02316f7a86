from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

TradeSide = Literal["buy", "sell"]
OrderType = Literal["market", "limit", "stop"]
ChangeEvent = Literal["INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class TradeRequest:
    symbol: str
    side: TradeSide
    amount: float
    order_type: OrderType = "market"
    price: Optional[float] = None
    account_id: Optional[str] = None
    trade_type: Optional[OrderType] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    reasoning: Optional[str] = None


@dataclass(frozen=True)
class TradeResult:
    """Outcome of the execute_paper_trade procedure."""

    success: bool
    trade_id: Optional[str] = None
    new_balance: Optional[float] = None
    trade_value: Optional[float] = None
    fee: Optional[float] = None
    price: Optional[float] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ResetAllResult:
    success_count: int
    total: int

    @property
    def success(self) -> bool:
        return self.success_count == self.total


@dataclass(frozen=True)
class AccountSummary:
    total_value: float
    total_pnl: float
    total_pnl_percentage: float
    active_accounts: int
    best_performing_account: Optional[dict[str, Any]] = None
    worst_performing_account: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class TableChange:
    """A row mutation published on the change feed."""

    table: str
    event: ChangeEvent
    user_id: Optional[str]
    row: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "postgres_changes",
            "table": self.table,
            "eventType": self.event,
            "new": self.row if self.event != "DELETE" else {},
            "old": self.row if self.event == "DELETE" else {},
        }
