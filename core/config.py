"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection configuration.

    `database_url` should come from environment (e.g. DATABASE_URL).
    Do not log it.
    """

    database_url: str
    echo: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Service-wide settings.

    Provider and exchange API keys are not held here; adapters read them from
    the environment at call time.
    """

    database: DatabaseConfig
    fee_rate: float = 0.001
    market_data_refresh_seconds: float = 0.0
    market_feed_interval_seconds: float = 5.0
    live_trading_dry_run: bool = True
    reset_all_delay_seconds: float = 0.5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL environment variable is required")

        fee_rate = _env_float("PAPER_TRADING_FEE_RATE", 0.001)
        if fee_rate < 0 or fee_rate >= 1:
            raise ValueError("PAPER_TRADING_FEE_RATE must be in [0, 1)")

        return cls(
            database=DatabaseConfig(database_url=database_url),
            fee_rate=fee_rate,
            market_data_refresh_seconds=_env_float("MARKET_DATA_REFRESH_SECONDS", 0.0),
            market_feed_interval_seconds=_env_float("MARKET_FEED_INTERVAL_SECONDS", 5.0),
            live_trading_dry_run=_env_bool("LIVE_TRADING_DRY_RUN", True),
            reset_all_delay_seconds=_env_float("RESET_ALL_DELAY_SECONDS", 0.5),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
