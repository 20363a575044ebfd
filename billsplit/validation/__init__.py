"""Validation package."""

from billsplit.validation.validator import (
    ClaimValidator,
    InvalidInputError,
    ItemValidator,
    SystemItemProtectedError,
    get_user_friendly_summary,
    is_reserved_label,
)

__all__ = [
    "ClaimValidator",
    "InvalidInputError",
    "ItemValidator",
    "SystemItemProtectedError",
    "get_user_friendly_summary",
    "is_reserved_label",
]
