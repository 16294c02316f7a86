"""Built-in account templates offered when creating a paper account."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class AccountTemplate:
    id: str
    name: str
    description: str
    account_type: str
    risk_level: str
    initial_balance: float
    max_daily_loss: float
    max_position_size: float
    max_drawdown_limit: float
    trading_strategy: str
    tags: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["tags"] = list(self.tags)
        return data


ACCOUNT_TEMPLATES: dict[str, AccountTemplate] = {
    t.id: t
    for t in (
        AccountTemplate(
            id="conservative",
            name="Conservative",
            description="Capital preservation with small positions and tight loss limits",
            account_type="conservative",
            risk_level="low",
            initial_balance=50000.0,
            max_daily_loss=500.0,
            max_position_size=2500.0,
            max_drawdown_limit=10.0,
            trading_strategy="dca",
            tags=("low-risk", "long-term"),
        ),
        AccountTemplate(
            id="balanced",
            name="Balanced",
            description="Moderate risk with diversified positions",
            account_type="balanced",
            risk_level="medium",
            initial_balance=100000.0,
            max_daily_loss=1000.0,
            max_position_size=5000.0,
            max_drawdown_limit=20.0,
            trading_strategy="trend_following",
            tags=("diversified",),
        ),
        AccountTemplate(
            id="aggressive",
            name="Aggressive Growth",
            description="Large positions chasing momentum, accepts deep drawdowns",
            account_type="aggressive",
            risk_level="high",
            initial_balance=100000.0,
            max_daily_loss=5000.0,
            max_position_size=25000.0,
            max_drawdown_limit=35.0,
            trading_strategy="momentum",
            tags=("high-risk", "growth"),
        ),
        AccountTemplate(
            id="day_trader",
            name="Day Trader",
            description="Short holding periods with strict daily loss limits",
            account_type="day_trading",
            risk_level="high",
            initial_balance=25000.0,
            max_daily_loss=1000.0,
            max_position_size=10000.0,
            max_drawdown_limit=15.0,
            trading_strategy="scalping",
            tags=("intraday", "active"),
        ),
    )
}
