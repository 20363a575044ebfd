"""Configuration package."""

from billsplit.config.settings import (
    AppSettings,
    ReconciliationSettings,
    Settings,
    ShareCodeSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ReconciliationSettings",
    "Settings",
    "ShareCodeSettings",
    "get_settings",
    "validate_all_settings",
]
