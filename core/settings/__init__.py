from core.settings.service import SettingsService

__all__ = ["SettingsService"]
