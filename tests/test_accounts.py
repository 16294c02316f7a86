"""Tests for multi-account management."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from core.accounts import ACCOUNT_TEMPLATES, AccountNotFoundError, AccountService
from core.storage import Stores, StoreError


@pytest.fixture
def service(stores: Stores) -> AccountService:
    return AccountService(stores)


class TestTemplates:
    def test_templates_are_keyed_by_id(self):
        assert set(ACCOUNT_TEMPLATES) == {"conservative", "balanced", "aggressive", "day_trader"}
        for template_id, template in ACCOUNT_TEMPLATES.items():
            assert template.id == template_id
            assert template.initial_balance > 0

    def test_to_dict(self):
        data = ACCOUNT_TEMPLATES["day_trader"].to_dict()
        assert data["account_type"] == "day_trading"
        assert data["trading_strategy"] == "scalping"
        assert isinstance(data["tags"], list)


class TestCreate:
    def test_first_account_becomes_default(self, service):
        first = service.create_custom_account("u1", {"account_name": "Main"})
        second = service.create_custom_account("u1", {"account_name": "Second"})

        assert first["is_default"] is True
        assert second["is_default"] is False

    def test_custom_defaults_fill_missing_fields(self, service):
        account = service.create_custom_account("u1", {"account_name": "  Main  ", "initial_balance": 2500})

        assert account["account_name"] == "Main"
        assert account["balance"] == 2500
        assert account["initial_balance"] == 2500
        assert account["account_type"] == "balanced"
        assert account["trading_strategy"] == "manual"
        assert account["max_drawdown_limit"] is None

    def test_blank_name_rejected(self, service):
        with pytest.raises(ValueError):
            service.create_custom_account("u1", {"account_name": "   "})

    def test_from_template(self, service):
        account = service.create_account_from_template("u1", "aggressive", "YOLO")
        template = ACCOUNT_TEMPLATES["aggressive"]

        assert account["account_name"] == "YOLO"
        assert account["balance"] == template.initial_balance
        assert account["max_position_size"] == template.max_position_size
        assert account["max_drawdown_limit"] == template.max_drawdown_limit
        assert account["tags"] == list(template.tags)

    def test_from_template_custom_balance(self, service):
        account = service.create_account_from_template("u1", "conservative", "Slow", custom_balance=7500)
        assert account["balance"] == 7500

    def test_unknown_template(self, service):
        with pytest.raises(ValueError, match="Unknown account template"):
            service.create_account_from_template("u1", "martingale", "Nope")


class TestUpdateDeleteSwitch:
    def test_update_allowed_fields(self, service):
        account = service.create_custom_account("u1", {"account_name": "Main"})
        updated = service.update_account("u1", account["id"], {"status": "paused", "description": "resting"})
        assert updated["status"] == "paused"
        assert updated["description"] == "resting"

    def test_update_rejects_balance(self, service):
        account = service.create_custom_account("u1", {"account_name": "Main"})
        with pytest.raises(ValueError, match="balance"):
            service.update_account("u1", account["id"], {"balance": 1e9})

    def test_update_unknown_account(self, service):
        with pytest.raises(AccountNotFoundError):
            service.update_account("u1", "missing", {"status": "paused"})

    def test_delete_default_promotes_newest(self, stores, service, make_account):
        now = datetime.now(timezone.utc)
        default = make_account(user_id="u1", account_name="A", is_default=True, created_at=now - timedelta(days=2))
        make_account(user_id="u1", account_name="B", is_default=False, created_at=now - timedelta(days=1))
        newest = make_account(user_id="u1", account_name="C", is_default=False, created_at=now)

        service.delete_account("u1", default["id"])

        remaining = {a["id"]: a["is_default"] for a in service.list_accounts("u1")}
        assert remaining[newest["id"]] is True
        assert sum(remaining.values()) == 1

    def test_delete_foreign_account(self, service, make_account):
        account = make_account(user_id="owner")
        with pytest.raises(AccountNotFoundError):
            service.delete_account("intruder", account["id"])

    def test_switch_moves_default_and_tracks_access(self, service, make_account):
        first = make_account(user_id="u1", account_name="A", is_default=True)
        second = make_account(user_id="u1", account_name="B", is_default=False)

        switched = service.switch_account("u1", second["id"])

        assert switched["is_default"] is True
        assert switched["access_count"] == 1
        assert switched["last_accessed"] is not None
        assert service.get_account("u1", first["id"])["is_default"] is False


class TestReset:
    def test_reset_clears_history_and_audits(self, stores, service, make_account):
        account = make_account(user_id="u1", balance=90000.0, total_pnl=-10000.0)
        stores.insert_rows(
            "paper_trades",
            [
                {
                    "user_id": "u1",
                    "account_id": account["id"],
                    "symbol": "BTC",
                    "side": "buy",
                    "amount": 1.0,
                    "price": 10000.0,
                    "total_value": 10000.0,
                }
            ],
        )
        stores.insert_rows(
            "account_notifications",
            [{"user_id": "u1", "account_id": account["id"], "notification_type": "info", "title": "hi"}],
        )

        outcome = service.reset_account("u1", account["id"])

        assert outcome == {"account_id": account["id"], "old_balance": 90000.0, "new_balance": 100000.0}
        assert stores.select_rows("paper_trades") == []
        assert stores.select_rows("account_notifications") == []
        saved = service.get_account("u1", account["id"])
        assert saved["balance"] == 100000.0
        assert saved["total_pnl"] == 0.0

        audit = stores.select_rows("paper_account_audit")
        assert len(audit) == 1
        assert audit[0]["action"] == "reset"
        assert audit[0]["amount_changed"] == 10000.0

    def test_reset_to_custom_balance(self, service, make_account):
        account = make_account(user_id="u1")
        outcome = service.reset_account("u1", account["id"], reset_to_balance=5000.0)
        assert outcome["new_balance"] == 5000.0
        assert service.get_account("u1", account["id"])["initial_balance"] == 5000.0

    def test_cleanup_failure_does_not_abort_reset(self, stores, service, make_account):
        account = make_account(user_id="u1", balance=1.0)
        real_delete = stores.delete_rows

        def flaky_delete(table, *, filters=None):
            if table == "paper_trades":
                raise StoreError("OperationalError: locked")
            return real_delete(table, filters=filters)

        with patch.object(stores, "delete_rows", side_effect=flaky_delete):
            outcome = service.reset_account("u1", account["id"])

        assert outcome["new_balance"] == 100000.0

    def test_balance_update_failure_propagates(self, stores, service, make_account):
        account = make_account(user_id="u1")
        with patch.object(stores, "reset_paper_account", side_effect=StoreError("boom")):
            with pytest.raises(StoreError):
                service.reset_account("u1", account["id"])

    def test_audit_failure_does_not_fail_reset(self, stores, service, make_account):
        account = make_account(user_id="u1", balance=50.0)
        real_insert = stores.insert_rows

        def no_audit(table, rows):
            if table == "paper_account_audit":
                raise StoreError("OperationalError: no such table: paper_account_audit")
            return real_insert(table, rows)

        with patch.object(stores, "insert_rows", side_effect=no_audit):
            result = service.reset_all_accounts("u1", delay_seconds=0)

        assert result.success_count == 1
        assert result.total == 1
        assert service.get_account("u1", account["id"])["balance"] == 100000.0

    def test_reset_unknown_account(self, service):
        with pytest.raises(AccountNotFoundError):
            service.reset_account("u1", "missing")

    def test_reset_all_paces_resets(self, service, make_account):
        for name in ("A", "B", "C"):
            make_account(user_id="u1", account_name=name, balance=1.0)
        sleeps: list[float] = []

        result = service.reset_all_accounts("u1", delay_seconds=0.5, sleep=sleeps.append)

        assert result.success_count == 3
        assert result.total == 3
        assert result.success is True
        assert sleeps == [0.5, 0.5]
        assert all(a["balance"] == 100000.0 for a in service.list_accounts("u1"))

    def test_reset_all_counts_failures(self, stores, service, make_account):
        make_account(user_id="u1", account_name="A")
        make_account(user_id="u1", account_name="B")
        real_reset = stores.reset_paper_account
        calls = {"n": 0}

        def fail_first(**kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StoreError("boom")
            return real_reset(**kwargs)

        with patch.object(stores, "reset_paper_account", side_effect=fail_first):
            result = service.reset_all_accounts("u1", delay_seconds=0)

        assert result.success_count == 1
        assert result.total == 2
        assert result.success is False


class TestSummary:
    def test_empty_summary(self, service):
        summary = service.get_account_summary("nobody")
        assert summary.total_value == 0.0
        assert summary.active_accounts == 0
        assert summary.best_performing_account is None

    def test_summary_aggregates(self, service, make_account):
        winner = make_account(
            user_id="u1", balance=120000.0, initial_balance=100000.0, total_pnl=20000.0, total_pnl_percentage=20.0
        )
        loser = make_account(
            user_id="u1",
            balance=50000.0,
            initial_balance=100000.0,
            total_pnl=-50000.0,
            total_pnl_percentage=-50.0,
            status="paused",
        )

        summary = service.get_account_summary("u1")

        assert summary.total_value == 170000.0
        assert summary.total_pnl == -30000.0
        assert summary.total_pnl_percentage == pytest.approx(-15.0)
        assert summary.active_accounts == 1
        assert summary.best_performing_account["id"] == winner["id"]
        assert summary.worst_performing_account["id"] == loser["id"]
