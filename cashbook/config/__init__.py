"""Configuration package."""

from cashbook.config.settings import (
    AppSettings,
    RecurrenceSettings,
    Settings,
    StorageSettings,
    get_settings,
    resolve_timezone,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "RecurrenceSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "resolve_timezone",
    "validate_all_settings",
]
