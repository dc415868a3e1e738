"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    ConcurrencySettings,
    LoggingSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ConcurrencySettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
