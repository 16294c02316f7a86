"""Live exchange order routing with account checks and risk scoring.

Orders go through ccxt's unified ``create_order``. The adapter runs in dry-run
mode unless ``LIVE_TRADING_DRY_RUN`` is disabled, in which case real orders
are placed with the credentials found in ``<EXCHANGE>_API_KEY`` /
``<EXCHANGE>_API_SECRET``.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Literal, Optional

import ccxt.async_support as ccxt_async
from ccxt.base.errors import BaseError as CcxtError

from core.execution.interfaces import ExchangeAdapter, ExchangeCredentials, LiveOrderType, OrderResult
from core.storage import Stores, StoreError

logger = logging.getLogger(__name__)

SUPPORTED_EXCHANGES: tuple[str, ...] = ("binance", "deribit", "kraken", "kucoin", "okx", "bybit")
LEVERAGE_LIMIT = 10.0
DRY_RUN_FEE_RATE = 0.001


class LiveTradingError(Exception):
    """A live order was rejected before or by the exchange.

    ``code`` is one of ACCOUNT_NOT_FOUND, EMERGENCY_STOP, UNSUPPORTED_EXCHANGE,
    NO_EXCHANGE_CONNECTION, RISK_LIMIT, INVALID_REQUEST or TRADE_ERROR.
    """

    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class LiveTradeRequest:
    exchange: str
    symbol: str
    side: Literal["buy", "sell"]
    amount: float
    account_id: str
    order_type: LiveOrderType = "market"
    price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    leverage: Optional[float] = None


@dataclass(frozen=True)
class RiskValidation:
    valid: bool
    reason: str
    risk_score: int


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return None


def daily_realised_loss(trades: Iterable[dict[str, Any]], day: date) -> float:
    """Realised loss on ``day`` from sells priced against the running average cost.

    ``trades`` must be in chronological order.
    """
    positions: dict[str, tuple[float, float]] = {}  # symbol -> (qty, avg_cost)
    loss = 0.0
    for trade in trades:
        symbol = trade["symbol"]
        qty, avg_cost = positions.get(symbol, (0.0, 0.0))
        amount = trade["amount"]
        price = trade["price"]
        if trade["side"] == "buy":
            new_qty = qty + amount
            avg_cost = (qty * avg_cost + amount * price) / new_qty if new_qty else 0.0
            positions[symbol] = (new_qty, avg_cost)
            continue

        closed = min(amount, qty)
        created_at = _as_datetime(trade.get("created_at"))
        if closed > 0 and created_at is not None and created_at.date() == day:
            pnl = (price - avg_cost) * closed
            if pnl < 0:
                loss += -pnl
        positions[symbol] = (max(qty - amount, 0.0), avg_cost)
    return loss


def validate_trade_risk(
    account: dict[str, Any],
    request: LiveTradeRequest,
    *,
    price: float,
    daily_loss: float,
) -> RiskValidation:
    """Score ``request`` against the account's limits.

    The trade stays valid while the score is below 100, even with warnings.
    """
    score = 0
    issues: list[str] = []

    position_value = request.amount * price
    max_position = account.get("max_position_size")
    if max_position and position_value > max_position:
        issues.append(f"Position value {position_value:.2f} exceeds limit of {max_position:.2f}")
        score += 50

    max_daily_loss = account.get("max_daily_loss")
    if max_daily_loss and daily_loss >= max_daily_loss:
        issues.append(f"Daily loss limit of {max_daily_loss:.2f} reached")
        score += 100

    initial = account.get("initial_balance") or 0.0
    max_drawdown = account.get("max_drawdown_limit")
    if initial and max_drawdown:
        drawdown = (initial - account["balance"]) / initial * 100
        if drawdown >= max_drawdown:
            issues.append(f"Max drawdown of {max_drawdown}% reached")
            score += 100

    if request.leverage and request.leverage > LEVERAGE_LIMIT:
        issues.append(f"Leverage {request.leverage:g}x exceeds limit of {LEVERAGE_LIMIT:g}x")
        score += 30

    if request.order_type == "market":
        score += 10  # slippage

    if not request.stop_loss:
        issues.append("Warning: No stop loss set on live trade")
        score += 20

    return RiskValidation(
        valid=not issues or score < 100,
        reason="; ".join(issues),
        risk_score=min(score, 100),
    )


def credentials_from_env(exchange: str) -> Optional[ExchangeCredentials]:
    prefix = exchange.upper()
    api_key = os.environ.get(f"{prefix}_API_KEY", "").strip()
    api_secret = os.environ.get(f"{prefix}_API_SECRET", "").strip()
    if not api_key or not api_secret:
        return None
    return ExchangeCredentials(
        api_key=api_key,
        api_secret=api_secret,
        password=os.environ.get(f"{prefix}_API_PASSWORD", "").strip() or None,
        testnet=os.environ.get(f"{prefix}_TESTNET", "").strip().lower() in {"1", "true", "yes", "on"},
    )


class CcxtExchangeAdapter:
    """ccxt-backed adapter. Defaults to dry-run."""

    def __init__(
        self,
        exchange_id: str,
        credentials: ExchangeCredentials,
        *,
        dry_run: bool = True,
        reference_price: Optional[float] = None,
    ) -> None:
        self.exchange_id = exchange_id
        self._credentials = credentials
        self.dry_run = dry_run
        self._reference_price = reference_price

    def _build_client(self) -> Any:
        exchange_class = getattr(ccxt_async, self.exchange_id)
        config: dict[str, Any] = {
            "apiKey": self._credentials.api_key,
            "secret": self._credentials.api_secret,
            "enableRateLimit": True,
        }
        if self._credentials.password:
            config["password"] = self._credentials.password
        client = exchange_class(config)
        if self._credentials.testnet:
            client.set_sandbox_mode(True)
        return client

    async def create_order(
        self,
        *,
        symbol: str,
        side: Literal["buy", "sell"],
        amount: float,
        order_type: LiveOrderType = "market",
        price: Optional[float] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> OrderResult:
        if order_type in ("limit", "stop") and price is None:
            raise LiveTradingError(f"{order_type} orders require price", code="INVALID_REQUEST")

        if self.dry_run:
            return self._dry_run_order(amount=amount, order_type=order_type, price=price)

        ccxt_type = "limit" if order_type == "limit" else "market"
        ccxt_params = dict(params or {})
        if order_type == "stop":
            ccxt_params["triggerPrice"] = price

        client = self._build_client()
        try:
            order = await client.create_order(
                symbol,
                ccxt_type,
                side,
                amount,
                price if ccxt_type == "limit" else None,
                ccxt_params,
            )
        except CcxtError as exc:
            logger.error("%s rejected order: %s", self.exchange_id, exc)
            raise LiveTradingError(f"{self.exchange_id} order failed: {exc}", code="TRADE_ERROR") from exc
        finally:
            await client.close()

        order_id = order.get("id")
        if order_id is None:
            raise LiveTradingError(
                f"{self.exchange_id} order submission returned no order id", code="TRADE_ERROR"
            )
        return OrderResult(
            id=str(order_id),
            status=order.get("status") or "open",
            filled=float(order.get("filled") or 0.0),
            remaining=float(order.get("remaining") or 0.0),
            average=order.get("average"),
            cost=float(order.get("cost") or 0.0),
            fee=order.get("fee"),
            raw=order.get("info") or {},
        )

    def _dry_run_order(self, *, amount: float, order_type: str, price: Optional[float]) -> OrderResult:
        fill_price = price if price is not None else self._reference_price
        filled = amount if order_type == "market" else 0.0
        cost = filled * fill_price if fill_price else 0.0
        return OrderResult(
            id=f"dry-run-{uuid.uuid4().hex[:12]}",
            status="closed" if filled else "open",
            filled=filled,
            remaining=amount - filled,
            average=fill_price if filled else None,
            cost=cost,
            fee={"cost": round(cost * DRY_RUN_FEE_RATE, 8), "currency": "USD"},
            raw={"dry_run": True},
        )


AdapterFactory = Callable[[str, ExchangeCredentials, bool, Optional[float]], ExchangeAdapter]


def _default_adapter_factory(
    exchange: str,
    credentials: ExchangeCredentials,
    dry_run: bool,
    reference_price: Optional[float],
) -> ExchangeAdapter:
    return CcxtExchangeAdapter(exchange, credentials, dry_run=dry_run, reference_price=reference_price)


class LiveTradingConnector:
    """Runs account, exchange and risk checks, then routes the order."""

    def __init__(
        self,
        stores: Stores,
        *,
        dry_run: bool = True,
        adapter_factory: AdapterFactory = _default_adapter_factory,
        credentials_lookup: Callable[[str], Optional[ExchangeCredentials]] = credentials_from_env,
    ) -> None:
        self._stores = stores
        self._dry_run = dry_run
        self._adapter_factory = adapter_factory
        self._credentials_lookup = credentials_lookup

    async def execute(self, user_id: str, request: LiveTradeRequest) -> dict[str, Any]:
        """Place ``request`` for ``user_id``.

        Raises:
            LiveTradingError: with a ``code`` describing which check failed.
        """
        logger.info(
            "[TRADE] User %s requesting %s %s %s on %s",
            user_id,
            request.side,
            request.amount,
            request.symbol,
            request.exchange,
        )
        start = time.monotonic()
        try:
            result, risk = await self._execute(user_id, request)
        except LiveTradingError as exc:
            logger.warning("[TRADE] Rejected (%s): %s", exc.code, exc)
            self._audit(
                user_id,
                request,
                "live_trade_failed",
                {"error": str(exc), "code": exc.code},
            )
            raise

        execution_ms = int((time.monotonic() - start) * 1000)
        self._audit(
            user_id,
            request,
            "live_trade_executed",
            {
                "executed_price": result.average,
                "order_id": result.id,
                "execution_time_ms": execution_ms,
                "risk_score": risk.risk_score,
                "dry_run": self._dry_run,
            },
        )
        logger.info("[TRADE] Order %s on %s: %s", result.id, request.exchange, result.status)

        return {
            "success": True,
            "result": {
                "orderId": result.id,
                "status": result.status,
                "filled": result.filled,
                "remaining": result.remaining,
                "averagePrice": result.average,
                "cost": result.cost,
                "fee": result.fee,
                "executionTime": execution_ms,
            },
        }

    async def _execute(self, user_id: str, request: LiveTradeRequest) -> tuple[OrderResult, RiskValidation]:
        if request.amount <= 0:
            raise LiveTradingError("Amount must be positive", code="INVALID_REQUEST")
        if request.order_type in ("limit", "stop") and request.price is None:
            raise LiveTradingError(f"{request.order_type} orders require price", code="INVALID_REQUEST")

        account = self._stores.get_row(
            "paper_trading_accounts",
            filters={"id": request.account_id, "user_id": user_id},
        )
        if account is None:
            raise LiveTradingError("Trading account not found or unauthorized", code="ACCOUNT_NOT_FOUND")

        if account.get("status") == "emergency_stop":
            raise LiveTradingError(
                "Emergency stop is active on this account. Trading is disabled.",
                code="EMERGENCY_STOP",
            )

        exchange = request.exchange.lower()
        if exchange not in SUPPORTED_EXCHANGES:
            raise LiveTradingError(f"Exchange {request.exchange} is not supported", code="UNSUPPORTED_EXCHANGE")

        credentials = self._credentials_lookup(exchange)
        if credentials is None:
            raise LiveTradingError(
                f"No active {request.exchange} connection found. Please configure API keys.",
                code="NO_EXCHANGE_CONNECTION",
            )

        price = request.price or self._cached_price(request.symbol)
        risk = validate_trade_risk(
            account,
            request,
            price=price or 0.0,
            daily_loss=self._daily_loss(user_id, account["id"]),
        )
        if not risk.valid:
            raise LiveTradingError(f"Risk validation failed: {risk.reason}", code="RISK_LIMIT")

        adapter = self._adapter_factory(exchange, credentials, self._dry_run, price)
        params: dict[str, Any] = {}
        if request.stop_loss:
            params["stopLoss"] = {"triggerPrice": request.stop_loss}
        if request.take_profit:
            params["takeProfit"] = {"triggerPrice": request.take_profit}

        result = await adapter.create_order(
            symbol=request.symbol,
            side=request.side,
            amount=request.amount,
            order_type=request.order_type,
            price=request.price,
            params=params,
        )
        return result, risk

    def _cached_price(self, symbol: str) -> Optional[float]:
        base = symbol.split("/")[0].upper()
        row = self._stores.get_row("market_data_cache", filters={"symbol": base})
        return row.get("price_usd") if row else None

    def _daily_loss(self, user_id: str, account_id: str) -> float:
        trades = self._stores.select_rows(
            "paper_trades",
            filters={"user_id": user_id, "account_id": account_id},
            order_by="created_at",
        )
        return daily_realised_loss(trades, datetime.now(timezone.utc).date())

    def _audit(self, user_id: str, request: LiveTradeRequest, action: str, extra: dict[str, Any]) -> None:
        details = {
            "exchange": request.exchange,
            "symbol": request.symbol,
            "side": request.side,
            "amount": request.amount,
            "order_type": request.order_type,
            **extra,
        }
        try:
            self._stores.insert_rows(
                "paper_account_audit",
                [
                    {
                        "user_id": user_id,
                        "account_id": request.account_id,
                        "action": action,
                        "reason": extra.get("error", ""),
                        "details": details,
                    }
                ],
            )
        except StoreError:
            logger.error("[TRADE] Failed to write %s audit row", action, exc_info=True)
