from __future__ import annotations

import logging
from typing import Any, Optional

from core.notifications.service import NotificationService
from core.storage import Stores, StoreError
from core.types import TradeRequest, TradeResult

logger = logging.getLogger(__name__)


class TradeError(Exception):
    """Raised when a paper trade cannot be executed.

    ``is_validation`` separates bad input/balance problems (HTTP 400) from
    storage failures (HTTP 500).
    """

    def __init__(self, message: str, *, is_validation: bool = True) -> None:
        super().__init__(message)
        self.is_validation = is_validation


class PaperTradeExecutor:
    """Executes simulated trades against a user's paper trading account.

    Flow for a single trade:
    - resolve the fill price (cached market price for market orders)
    - resolve the account (explicit id or the user's default account)
    - run the ``execute_paper_trade`` procedure (balance check, trade row, balance update)
    - record a ``trade_executed`` notification
    """

    def __init__(
        self,
        stores: Stores,
        *,
        fee_rate: float = 0.001,
        notifications: Optional[NotificationService] = None,
    ) -> None:
        self._stores = stores
        self._fee_rate = fee_rate
        self._notifications = notifications or NotificationService(stores)

    def _resolve_price(self, request: TradeRequest, symbol: str) -> float:
        price = request.price
        if not price or request.order_type == "market":
            cached = self._stores.get_row("market_data_cache", filters={"symbol": symbol})
            cached_price = cached.get("price_usd") if cached else None
            price = cached_price or request.price or 0

        if not price or price <= 0:
            raise TradeError(f"Invalid price for {request.symbol}")
        return float(price)

    def _resolve_account(self, user_id: str, account_id: Optional[str]) -> dict[str, Any]:
        filters: dict[str, Any] = {"user_id": user_id}
        if account_id:
            filters["id"] = account_id
        else:
            filters["is_default"] = True

        rows = self._stores.select_rows("paper_trading_accounts", filters=filters, limit=2)
        if len(rows) != 1:
            logger.error("Paper account lookup failed for user %s (matches=%d)", user_id, len(rows))
            raise TradeError("Paper trading account not found")
        return rows[0]

    def execute(self, user_id: str, request: TradeRequest) -> TradeResult:
        """Execute ``request`` for ``user_id``.

        Raises:
            TradeError: on invalid price, missing account, or a rejected trade.
        """
        symbol = request.symbol.upper()
        logger.info(
            "Processing paper trade: %s %s %s (%s)",
            request.side,
            request.amount,
            symbol,
            request.order_type,
        )

        price = self._resolve_price(request, symbol)
        account = self._resolve_account(user_id, request.account_id)
        logger.info("Using account %s balance=%s", account["account_name"], account["balance"])

        has_extras = any(v is not None for v in (request.stop_loss, request.take_profit, request.reasoning))
        result = self._stores.execute_paper_trade(
            user_id=user_id,
            account_id=account["id"],
            symbol=symbol,
            side=request.side,
            amount=request.amount,
            price=price,
            trade_type=request.trade_type or request.order_type,
            order_type=request.order_type,
            fee_rate=self._fee_rate,
            stop_loss=request.stop_loss,
            take_profit=request.take_profit,
            reasoning=request.reasoning,
            trade_category="manual" if has_extras else None,
        )

        if not result.success:
            logger.warning("Trade failed: %s", result.error)
            raise TradeError(result.error or "Trade execution failed")

        logger.info("Trade executed: id=%s new_balance=%s", result.trade_id, result.new_balance)
        self._notify(user_id, account["id"], request, symbol, result)
        return result

    def _notify(self, user_id: str, account_id: str, request: TradeRequest, symbol: str, result: TradeResult) -> None:
        """Best-effort: the trade is already committed when this runs."""
        try:
            self._notifications.create(
                user_id=user_id,
                account_id=account_id,
                notification_type="trade_executed",
                title=f"{request.side.upper()} {symbol} executed",
                message=describe_trade(request.side, request.amount, symbol, result.price or 0.0),
                severity="success",
                metadata={
                    "trade_id": result.trade_id,
                    "symbol": symbol,
                    "side": request.side,
                    "amount": request.amount,
                    "price": result.price,
                    "fee": result.fee,
                },
            )
        except StoreError:
            logger.warning("Trade %s executed but its notification was not stored", result.trade_id, exc_info=True)

    def get_trade_history(
        self,
        user_id: str,
        *,
        account_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {"user_id": user_id}
        if account_id:
            filters["account_id"] = account_id
        return self._stores.select_rows(
            "paper_trades", filters=filters, order_by="created_at", descending=True, limit=limit
        )

    def calculate_portfolio_value(self, user_id: str, account_id: str) -> float:
        """Mark open holdings to the cached USD price.

        Symbols without a cached price contribute nothing.
        """
        holdings = self._stores.get_holdings(user_id=user_id, account_id=account_id)
        open_symbols = [symbol for symbol, qty in holdings.items() if qty > 0]
        if not open_symbols:
            return 0.0

        quotes = self._stores.select_rows("market_data_cache", filters={"symbol": open_symbols})
        prices = {row["symbol"]: row.get("price_usd") for row in quotes}

        total = 0.0
        for symbol in open_symbols:
            price = prices.get(symbol)
            if price:
                total += holdings[symbol] * price
        return total


def describe_trade(side: str, amount: float, symbol: str, price: float) -> str:
    return f"{side.upper()} {amount:g} {symbol} at ${price:,.2f}"
