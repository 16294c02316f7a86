"""Tests for per-user settings."""

from __future__ import annotations

import pytest

from core.settings.service import SettingsService


@pytest.fixture
def settings(stores) -> SettingsService:
    return SettingsService(stores)


def test_load_empty(settings):
    assert settings.load_settings("u1") == {}


def test_update_then_load(settings):
    settings.update_setting("u1", "api_keys", {"openrouter": "set"})
    settings.update_setting("u1", "theme", "dark")
    settings.update_setting("u2", "theme", "light")

    assert settings.load_settings("u1") == {"api_keys": {"openrouter": "set"}, "theme": "dark"}
    assert settings.load_settings("u1", names=["theme"]) == {"theme": "dark"}


def test_update_overwrites_existing(stores, settings):
    settings.update_setting("u1", "theme", "dark")
    row = settings.update_setting("u1", "theme", "light")

    assert row["setting_value"] == "light"
    assert len(stores.select_rows("user_settings", filters={"user_id": "u1"})) == 1


def test_empty_name_rejected(settings):
    with pytest.raises(ValueError):
        settings.update_setting("u1", "", 1)
