"""Multi-account management for paper trading.

Covers creation (custom or from a template), updates, switching the default
account, deletion, the account reset sequence and the cross-account summary.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from core.accounts.templates import ACCOUNT_TEMPLATES
from core.storage import Stores, StoreError
from core.types import AccountSummary, ResetAllResult

logger = logging.getLogger(__name__)

ACCOUNTS = "paper_trading_accounts"

UPDATABLE_FIELDS = frozenset(
    {
        "account_name",
        "account_type",
        "risk_level",
        "max_daily_loss",
        "max_position_size",
        "max_drawdown_limit",
        "trading_strategy",
        "description",
        "tags",
        "status",
    }
)

CUSTOM_DEFAULTS: dict[str, Any] = {
    "account_type": "balanced",
    "risk_level": "medium",
    "initial_balance": 100000.0,
    "max_daily_loss": 1000.0,
    "max_position_size": 5000.0,
    "trading_strategy": "manual",
    "status": "active",
    "description": "",
}


class AccountNotFoundError(LookupError):
    """The account does not exist or is not owned by the caller."""

    def __init__(self, account_id: Optional[str] = None) -> None:
        super().__init__("Account not found")
        self.account_id = account_id


class AccountService:
    def __init__(self, stores: Stores) -> None:
        self._stores = stores

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def get_account(self, user_id: str, account_id: str) -> dict[str, Any]:
        row = self._stores.get_row(ACCOUNTS, filters={"id": account_id, "user_id": user_id})
        if row is None:
            raise AccountNotFoundError(account_id)
        return row

    def list_accounts(self, user_id: str) -> list[dict[str, Any]]:
        return self._stores.select_rows(ACCOUNTS, filters={"user_id": user_id}, order_by="created_at", descending=True)

    def _has_accounts(self, user_id: str) -> bool:
        return bool(self._stores.select_rows(ACCOUNTS, filters={"user_id": user_id}, limit=1))

    def create_custom_account(self, user_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        name = (data.get("account_name") or "").strip()
        if not name:
            raise ValueError("account_name is required")

        row: dict[str, Any] = {}
        for key, default in CUSTOM_DEFAULTS.items():
            value = data.get(key)
            row[key] = value if value else default
        row["balance"] = row["initial_balance"]
        row.update(
            {
                "user_id": user_id,
                "account_name": name,
                "max_drawdown_limit": data.get("max_drawdown_limit"),
                "tags": list(data.get("tags") or []),
                "is_default": not self._has_accounts(user_id),
            }
        )

        created = self._stores.insert_rows(ACCOUNTS, [row])[0]
        logger.info("Created account %s for user %s (default=%s)", created["id"], user_id, created["is_default"])
        return created

    def create_account_from_template(
        self,
        user_id: str,
        template_id: str,
        account_name: str,
        custom_balance: Optional[float] = None,
    ) -> dict[str, Any]:
        template = ACCOUNT_TEMPLATES.get(template_id)
        if template is None:
            raise ValueError(f"Unknown account template: {template_id}")

        balance = custom_balance if custom_balance and custom_balance > 0 else template.initial_balance
        return self.create_custom_account(
            user_id,
            {
                "account_name": account_name,
                "account_type": template.account_type,
                "risk_level": template.risk_level,
                "initial_balance": balance,
                "max_daily_loss": template.max_daily_loss,
                "max_position_size": template.max_position_size,
                "max_drawdown_limit": template.max_drawdown_limit,
                "trading_strategy": template.trading_strategy,
                "description": template.description,
                "tags": list(template.tags),
            },
        )

    def update_account(self, user_id: str, account_id: str, updates: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        self.get_account(user_id, account_id)
        values = dict(updates)
        values["updated_at"] = self._now()
        rows = self._stores.update_rows(ACCOUNTS, filters={"id": account_id, "user_id": user_id}, values=values)
        return rows[0]

    def delete_account(self, user_id: str, account_id: str) -> None:
        account = self.get_account(user_id, account_id)
        self._stores.delete_rows(ACCOUNTS, filters={"id": account_id, "user_id": user_id})
        logger.info("Deleted account %s for user %s", account_id, user_id)

        if account.get("is_default"):
            remaining = self.list_accounts(user_id)
            if remaining:
                self._stores.update_rows(
                    ACCOUNTS,
                    filters={"id": remaining[0]["id"], "user_id": user_id},
                    values={"is_default": True, "updated_at": self._now()},
                )

    def switch_account(self, user_id: str, account_id: str) -> dict[str, Any]:
        account = self.get_account(user_id, account_id)
        now = self._now()
        self._stores.update_rows(
            ACCOUNTS,
            filters={"user_id": user_id, "is_default": True},
            values={"is_default": False},
        )
        rows = self._stores.update_rows(
            ACCOUNTS,
            filters={"id": account_id, "user_id": user_id},
            values={
                "is_default": True,
                "access_count": (account.get("access_count") or 0) + 1,
                "last_accessed": now,
                "updated_at": now,
            },
        )
        logger.info("Switched default account for user %s to %s", user_id, account_id)
        return rows[0]

    def reset_account(self, user_id: str, account_id: str, reset_to_balance: Optional[float] = None) -> dict[str, Any]:
        """Reset an account to a fresh balance and clear its history.

        Trade and notification cleanup is best-effort: a failure there is
        logged and the reset continues, and so is the audit entry. The
        balance update is the critical step and its failure propagates.
        """
        logger.info("Starting account reset for %s", account_id)
        account = self.get_account(user_id, account_id)
        new_balance = reset_to_balance or account["initial_balance"]

        for table in ("paper_trades", "account_notifications"):
            try:
                deleted = self._stores.delete_rows(table, filters={"account_id": account_id, "user_id": user_id})
                logger.info("Reset cleanup removed %d rows from %s", deleted, table)
            except StoreError:
                logger.warning("Reset cleanup of %s failed for account %s", table, account_id, exc_info=True)

        outcome = self._stores.reset_paper_account(user_id=user_id, account_id=account_id, new_balance=new_balance)
        if outcome is None:
            raise AccountNotFoundError(account_id)

        old_balance = account["balance"]
        try:
            self._stores.insert_rows(
                "paper_account_audit",
                [
                    {
                        "user_id": user_id,
                        "account_id": account_id,
                        "action": "reset",
                        "old_balance": old_balance,
                        "new_balance": new_balance,
                        "amount_changed": new_balance - old_balance,
                        "reason": "Complete account reset with trade history cleared",
                    }
                ],
            )
        except StoreError:
            logger.warning("Reset audit entry failed for account %s", account_id, exc_info=True)
        logger.info("Account reset completed for %s (%s -> %s)", account_id, old_balance, new_balance)
        return {"account_id": account_id, "old_balance": old_balance, "new_balance": new_balance}

    def reset_all_accounts(
        self,
        user_id: str,
        *,
        delay_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ResetAllResult:
        accounts = self.list_accounts(user_id)
        logger.info("Starting reset for all %d accounts of user %s", len(accounts), user_id)

        success_count = 0
        for index, account in enumerate(accounts):
            if index and delay_seconds > 0:
                sleep(delay_seconds)
            try:
                self.reset_account(user_id, account["id"])
                success_count += 1
            except (AccountNotFoundError, StoreError):
                logger.error("Reset failed for account %s", account["id"], exc_info=True)

        return ResetAllResult(success_count=success_count, total=len(accounts))

    def get_account_summary(self, user_id: str) -> AccountSummary:
        accounts = self.list_accounts(user_id)
        if not accounts:
            return AccountSummary(total_value=0.0, total_pnl=0.0, total_pnl_percentage=0.0, active_accounts=0)

        total_value = sum(a["balance"] or 0.0 for a in accounts)
        total_pnl = sum(a["total_pnl"] or 0.0 for a in accounts)
        total_initial = sum(a["initial_balance"] or 0.0 for a in accounts)
        ranked = sorted(accounts, key=lambda a: a["total_pnl_percentage"] or 0.0)

        return AccountSummary(
            total_value=total_value,
            total_pnl=total_pnl,
            total_pnl_percentage=(total_pnl / total_initial * 100) if total_initial else 0.0,
            active_accounts=sum(1 for a in accounts if a["status"] == "active"),
            best_performing_account=ranked[-1],
            worst_performing_account=ranked[0],
        )
