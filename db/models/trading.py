"""SQLAlchemy models for paper trading tables.

- paper_trading_accounts
- paper_trades
- paper_account_audit
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, Text

from db.models.base import Base, JSONType, new_id, utcnow


class PaperTradingAccount(Base):
    """Virtual trading account with its own balance.

    Table: paper_trading_accounts
    """

    __tablename__ = "paper_trading_accounts"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False)
    account_name = Column(Text, nullable=False)
    account_type = Column(Text, nullable=False, default="balanced")
    risk_level = Column(Text, nullable=False, default="medium")
    balance = Column(Float, nullable=False, default=100000.0)
    initial_balance = Column(Float, nullable=False, default=100000.0)
    total_pnl = Column(Float, nullable=False, default=0.0)
    total_pnl_percentage = Column(Float, nullable=False, default=0.0)
    max_daily_loss = Column(Float, nullable=False, default=1000.0)
    max_position_size = Column(Float, nullable=False, default=5000.0)
    max_drawdown_limit = Column(Float, nullable=True)
    trading_strategy = Column(Text, nullable=False, default="manual")
    description = Column(Text, nullable=False, default="")
    tags = Column(JSONType, nullable=False, default=list)
    status = Column(Text, nullable=False, default="active")  # active|paused|emergency_stop
    is_default = Column(Boolean, nullable=False, default=False)
    access_count = Column(Integer, nullable=False, default=0)
    last_accessed = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("idx_paper_accounts_user", "user_id", "is_default"),)

    def __repr__(self) -> str:
        return f"<PaperTradingAccount(id={self.id}, name={self.account_name}, balance={self.balance})>"


class PaperTrade(Base):
    """A single executed paper trade.

    Table: paper_trades
    """

    __tablename__ = "paper_trades"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False)
    account_id = Column(Text, ForeignKey("paper_trading_accounts.id", ondelete="CASCADE"), nullable=False)
    symbol = Column(Text, nullable=False)
    side = Column(Text, nullable=False)  # buy|sell
    amount = Column(Float, nullable=False)
    price = Column(Float, nullable=False)
    total_value = Column(Float, nullable=False)
    fee = Column(Float, nullable=False, default=0.0)
    trade_type = Column(Text, nullable=False, default="market")
    order_type = Column(Text, nullable=False, default="market")
    status = Column(Text, nullable=False, default="completed")
    stop_loss = Column(Float, nullable=True)
    take_profit = Column(Float, nullable=True)
    reasoning = Column(Text, nullable=True)
    trade_category = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_paper_trades_account", "account_id", "created_at"),
        Index("idx_paper_trades_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<PaperTrade(id={self.id}, {self.side} {self.amount} {self.symbol} @ {self.price})>"


class PaperAccountAudit(Base):
    """Audit trail for balance-changing account operations.

    Table: paper_account_audit
    """

    __tablename__ = "paper_account_audit"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False)
    account_id = Column(Text, nullable=True)
    action = Column(Text, nullable=False)  # reset|live_trade_executed|live_trade_failed
    old_balance = Column(Float, nullable=True)
    new_balance = Column(Float, nullable=True)
    amount_changed = Column(Float, nullable=True)
    reason = Column(Text, nullable=False, default="")
    details = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("idx_paper_account_audit_account", "account_id", "created_at"),)
