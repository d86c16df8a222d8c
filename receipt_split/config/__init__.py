"""Configuration package."""

from receipt_split.config.settings import (
    AppSettings,
    CloudinarySettings,
    GoogleSheetsSettings,
    HouseholdSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CloudinarySettings",
    "GoogleSheetsSettings",
    "HouseholdSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
