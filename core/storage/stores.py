from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

from sqlalchemy import case, create_engine, delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import DatabaseConfig
from core.types import TableChange, TradeResult
from db.models import (
    AccountNotification,
    Base,
    MarketDataCache,
    PaperAccountAudit,
    PaperTrade,
    PaperTradingAccount,
    SocialSentiment,
    UserSetting,
)
from db.models.base import row_to_dict

logger = logging.getLogger(__name__)

TABLES: dict[str, type[Base]] = {
    model.__tablename__: model
    for model in (
        PaperTradingAccount,
        PaperTrade,
        PaperAccountAudit,
        UserSetting,
        MarketDataCache,
        AccountNotification,
        SocialSentiment,
    )
}

ChangeListener = Callable[[TableChange], None]

# Float tolerance when comparing holdings against a sell amount.
_HOLDINGS_EPSILON = 1e-9


class StoreError(RuntimeError):
    """Raised when a storage operation fails or references an unknown table/column."""


class Stores:
    """Single entrypoint for the relational store.

    Exposes the generic select/insert/update/upsert/delete calls the dashboard
    issues by table name, plus the two stored procedures
    (``execute_paper_trade`` and ``reset_paper_account``). Every committed
    mutation is published to registered change listeners.
    """

    def __init__(self, *, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: Any | None = None
        self._session_factory: sessionmaker | None = None
        self._listeners: list[ChangeListener] = []
        self._listeners_lock = threading.Lock()

    def _get_engine(self) -> Any:
        if self._engine is None:
            url = self._config.database_url
            kwargs: dict[str, Any] = {"echo": self._config.echo, "pool_pre_ping": True}
            if url.startswith("sqlite"):
                kwargs["connect_args"] = {"check_same_thread": False}
                if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
                    kwargs["poolclass"] = StaticPool
            # Do not log the URL (it may contain secrets).
            self._engine = create_engine(url, **kwargs)
        return self._engine

    def _get_session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._get_engine(), expire_on_commit=False)
        return self._session_factory

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self._get_engine())

    def drop_schema(self) -> None:
        """Drop every table defined under db/models."""
        Base.metadata.drop_all(self._get_engine())

    def ping(self) -> float:
        """Run a trivial query and return its latency in milliseconds."""
        start = time.monotonic()
        try:
            with self._get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreError(f"Database ping failed: {type(exc).__name__}") from exc
        return round((time.monotonic() - start) * 1000, 2)

    # ---- change feed

    def add_listener(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _publish(self, changes: Sequence[TableChange]) -> None:
        if not changes:
            return
        with self._listeners_lock:
            listeners = list(self._listeners)
        for change in changes:
            for listener in listeners:
                try:
                    listener(change)
                except Exception:
                    logger.warning("Change listener failed for %s", change.table, exc_info=True)

    @contextmanager
    def _transaction(self) -> Iterator[tuple[Session, list[TableChange]]]:
        changes: list[TableChange] = []
        try:
            with self._get_session_factory()() as session:
                with session.begin():
                    yield session, changes
        except SQLAlchemyError as exc:
            raise StoreError(f"{type(exc).__name__}: {exc}") from exc
        self._publish(changes)

    # ---- generic table access

    def _model(self, table: str) -> type[Base]:
        model = TABLES.get(table)
        if model is None:
            raise StoreError(f"Unknown table: {table}")
        return model

    def _columns(self, model: type[Base]) -> dict[str, Any]:
        """Map column name (and attribute key) -> mapped attribute."""
        mapping: dict[str, Any] = {}
        for attr in model.__mapper__.column_attrs:
            mapping[attr.columns[0].name] = attr
            mapping[attr.key] = attr
        return mapping

    def _to_attrs(self, model: type[Base], values: Mapping[str, Any]) -> dict[str, Any]:
        columns = self._columns(model)
        result: dict[str, Any] = {}
        for name, value in values.items():
            attr = columns.get(name)
            if attr is None:
                raise StoreError(f"Unknown column {model.__tablename__}.{name}")
            result[attr.key] = value
        return result

    def _where(self, model: type[Base], filters: Optional[Mapping[str, Any]]) -> list[Any]:
        clauses = []
        for key, value in self._to_attrs(model, filters or {}).items():
            column = getattr(model, key)
            if value is None:
                clauses.append(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses

    @staticmethod
    def _user_of(row: Mapping[str, Any]) -> Optional[str]:
        user_id = row.get("user_id")
        return str(user_id) if user_id is not None else None

    def select_rows(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        model = self._model(table)
        stmt = select(model).where(*self._where(model, filters))
        if order_by:
            key = next(iter(self._to_attrs(model, {order_by: None})))
            column = getattr(model, key)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._transaction() as (session, _):
            rows = session.execute(stmt).scalars().all()
            return [row_to_dict(row) for row in rows]

    def get_row(self, table: str, *, filters: Mapping[str, Any]) -> Optional[dict[str, Any]]:
        """Fetch exactly one row or None."""
        rows = self.select_rows(table, filters=filters, limit=2)
        if len(rows) > 1:
            raise StoreError(f"Expected a single {table} row, found several")
        return rows[0] if rows else None

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        if not rows:
            return []
        model = self._model(table)
        with self._transaction() as (session, changes):
            created = [model(**self._to_attrs(model, row)) for row in rows]
            session.add_all(created)
            session.flush()
            result = [row_to_dict(obj) for obj in created]
            changes.extend(TableChange(table, "INSERT", self._user_of(r), r) for r in result)
        return result

    def update_rows(
        self,
        table: str,
        *,
        filters: Mapping[str, Any],
        values: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        if not filters:
            raise StoreError("update_rows requires at least one filter")
        model = self._model(table)
        attrs = self._to_attrs(model, values)
        with self._transaction() as (session, changes):
            objs = session.execute(select(model).where(*self._where(model, filters))).scalars().all()
            for obj in objs:
                for key, value in attrs.items():
                    setattr(obj, key, value)
            session.flush()
            result = [row_to_dict(obj) for obj in objs]
            changes.extend(TableChange(table, "UPDATE", self._user_of(r), r) for r in result)
        return result

    def upsert_rows(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        conflict_columns: Sequence[str],
    ) -> list[dict[str, Any]]:
        """Insert rows, updating existing ones that match on ``conflict_columns``."""
        if not rows:
            return []
        if not conflict_columns:
            raise StoreError("upsert_rows requires conflict_columns")
        model = self._model(table)
        with self._transaction() as (session, changes):
            result = []
            for row in rows:
                attrs = self._to_attrs(model, row)
                key = {name: row[name] for name in conflict_columns}
                existing = session.execute(select(model).where(*self._where(model, key))).scalars().first()
                if existing is None:
                    obj = model(**attrs)
                    session.add(obj)
                    event = "INSERT"
                else:
                    obj = existing
                    for attr_key, value in attrs.items():
                        setattr(obj, attr_key, value)
                    event = "UPDATE"
                session.flush()
                data = row_to_dict(obj)
                result.append(data)
                changes.append(TableChange(table, event, self._user_of(data), data))
        return result

    def delete_rows(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> int:
        """Delete matching rows (all rows when ``filters`` is empty)."""
        model = self._model(table)
        where = self._where(model, filters)
        with self._transaction() as (session, changes):
            doomed = session.execute(select(model).where(*where)).scalars().all()
            deleted = [row_to_dict(obj) for obj in doomed]
            if deleted:
                session.execute(delete(model).where(*where))
            changes.extend(TableChange(table, "DELETE", self._user_of(r), r) for r in deleted)
        return len(deleted)

    # ---- queries

    def get_holdings(self, *, user_id: str, account_id: str) -> dict[str, float]:
        """Net position per symbol (buys minus sells)."""
        with self._transaction() as (session, _):
            return self._holdings(session, user_id=user_id, account_id=account_id)

    def _holdings(self, session: Session, *, user_id: str, account_id: str, symbol: str | None = None) -> dict[str, float]:
        signed = case((PaperTrade.side == "buy", PaperTrade.amount), else_=-PaperTrade.amount)
        stmt = (
            select(PaperTrade.symbol, func.coalesce(func.sum(signed), 0.0))
            .where(PaperTrade.user_id == user_id, PaperTrade.account_id == account_id)
            .group_by(PaperTrade.symbol)
        )
        if symbol is not None:
            stmt = stmt.where(PaperTrade.symbol == symbol)
        return {sym: float(qty) for sym, qty in session.execute(stmt).all()}

    # ---- stored procedures

    def execute_paper_trade(
        self,
        *,
        user_id: str,
        account_id: str,
        symbol: str,
        side: str,
        amount: float,
        price: float,
        trade_type: str = "market",
        order_type: str = "market",
        fee_rate: float = 0.001,
        stop_loss: float | None = None,
        take_profit: float | None = None,
        reasoning: str | None = None,
        trade_category: str | None = None,
    ) -> TradeResult:
        """Validate the balance, insert the trade row and update the account atomically.

        Mirrors the hosted ``execute_paper_trade`` function: business failures
        come back as ``TradeResult(success=False, error=...)`` rather than
        exceptions.
        """
        if side not in ("buy", "sell"):
            return TradeResult(success=False, error=f"Invalid side: {side}")
        if amount is None or amount <= 0:
            return TradeResult(success=False, error="Amount must be positive")
        if price is None or price <= 0:
            return TradeResult(success=False, error="Price must be positive")

        with self._transaction() as (session, changes):
            account = session.execute(
                select(PaperTradingAccount)
                .where(PaperTradingAccount.id == account_id, PaperTradingAccount.user_id == user_id)
                .with_for_update()
            ).scalar_one_or_none()
            if account is None:
                return TradeResult(success=False, error="Account not found")
            if account.status != "active":
                return TradeResult(success=False, error=f"Account is {account.status}")

            trade_value = round(amount * price, 8)
            fee = round(trade_value * fee_rate, 8)

            if side == "buy":
                cost = trade_value + fee
                if account.balance + _HOLDINGS_EPSILON < cost:
                    return TradeResult(
                        success=False,
                        error=f"Insufficient balance: required {cost:.2f}, available {account.balance:.2f}",
                    )
                new_balance = account.balance - cost
            else:
                held = self._holdings(session, user_id=user_id, account_id=account_id, symbol=symbol).get(symbol, 0.0)
                if held + _HOLDINGS_EPSILON < amount:
                    return TradeResult(
                        success=False,
                        error=f"Insufficient {symbol} holdings: have {held:g}, need {amount:g}",
                    )
                new_balance = account.balance + trade_value - fee

            now = datetime.now(timezone.utc)
            trade = PaperTrade(
                user_id=user_id,
                account_id=account_id,
                symbol=symbol,
                side=side,
                amount=amount,
                price=price,
                total_value=trade_value,
                fee=fee,
                trade_type=trade_type,
                order_type=order_type,
                status="completed",
                stop_loss=stop_loss,
                take_profit=take_profit,
                reasoning=reasoning,
                trade_category=trade_category,
                created_at=now,
            )
            session.add(trade)

            new_balance = round(new_balance, 8)
            account.balance = new_balance
            account.total_pnl = round(new_balance - account.initial_balance, 8)
            account.total_pnl_percentage = (
                account.total_pnl / account.initial_balance * 100 if account.initial_balance else 0.0
            )
            account.updated_at = now
            session.flush()

            changes.append(TableChange("paper_trades", "INSERT", user_id, row_to_dict(trade)))
            changes.append(TableChange("paper_trading_accounts", "UPDATE", user_id, row_to_dict(account)))

            return TradeResult(
                success=True,
                trade_id=trade.id,
                new_balance=new_balance,
                trade_value=trade_value,
                fee=fee,
                price=price,
            )

    def reset_paper_account(self, *, user_id: str, account_id: str, new_balance: float) -> Optional[dict[str, Any]]:
        """Reset balance, initial balance and P&L in one statement.

        Returns ``{"old_balance", "new_balance"}`` or None when the account is
        not owned by ``user_id``.
        """
        with self._transaction() as (session, changes):
            account = session.execute(
                select(PaperTradingAccount)
                .where(PaperTradingAccount.id == account_id, PaperTradingAccount.user_id == user_id)
                .with_for_update()
            ).scalar_one_or_none()
            if account is None:
                return None

            old_balance = account.balance
            account.balance = new_balance
            account.initial_balance = new_balance
            account.total_pnl = 0.0
            account.total_pnl_percentage = 0.0
            account.updated_at = datetime.now(timezone.utc)
            session.flush()
            changes.append(TableChange("paper_trading_accounts", "UPDATE", user_id, row_to_dict(account)))
            return {"old_balance": old_balance, "new_balance": new_balance}
