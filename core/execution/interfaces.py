from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol

LiveOrderType = Literal["market", "limit", "stop"]


@dataclass(frozen=True)
class ExchangeCredentials:
    api_key: str
    api_secret: str
    password: Optional[str] = None  # passphrase on KuCoin/OKX
    testnet: bool = False


@dataclass(frozen=True)
class OrderResult:
    """Normalized order as returned by an exchange (ccxt unified order structure)."""

    id: str
    status: str
    filled: float
    remaining: float
    average: Optional[float]
    cost: float
    fee: Optional[dict[str, Any]] = None
    raw: dict[str, Any] = field(default_factory=dict)


class ExchangeAdapter(Protocol):
    """Unified interface for live exchange adapters."""

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
        """Create an order on the exchange. Dry-run adapters return a synthetic order."""
