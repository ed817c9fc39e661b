"""Configuration package."""

from tripsplit.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    NotificationSettings,
    ResendSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "NotificationSettings",
    "ResendSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
