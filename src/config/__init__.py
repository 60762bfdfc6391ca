"""Configuration package."""

from src.config.settings import (
    GoogleSheetsSettings,
    LifecycleSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GoogleSheetsSettings",
    "LifecycleSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
