"""
Configuration Management for Bill Split

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Reconciliation tolerances and share-code parameters are process-wide
defaults; callers may still pass an explicit policy per call.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReconciliationSettings(BaseSettings):
    """Tolerances and auto-adjustment caps for receipt reconciliation."""

    model_config = SettingsConfigDict(
        env_prefix="RECONCILE_",
        extra="ignore"
    )

    epsilon: Decimal = Field(
        default=Decimal("0.02"),
        ge=0,
        description="Largest item/baseline gap treated as a match"
    )
    enforce_caps: bool = Field(
        default=True,
        description="Refuse auto-adjustments larger than the caps below"
    )
    max_abs: Decimal = Field(
        default=Decimal("5.00"),
        ge=0,
        description="Absolute cap for an auto-adjustment"
    )
    max_pct: Decimal = Field(
        default=Decimal("0.015"),
        ge=0,
        le=1,
        description="Cap relative to the baseline subtotal (0.015 = 1.5%)"
    )
    allow_without_printed_subtotal: bool = Field(
        default=True,
        description="Allow auto-adjustments when no subtotal was printed"
    )


class ShareCodeSettings(BaseSettings):
    """Share code generation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SHARE_CODE_",
        extra="ignore"
    )

    length: int = Field(
        default=8,
        ge=4,
        le=32,
        description="Number of characters in a share code"
    )
    max_attempts: int = Field(
        default=32,
        ge=1,
        description="Collision retries before giving up"
    )
    base_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL used to build share links"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Share URLs are built as {base_url}/s/{code}."""
        return v.rstrip("/")


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def reconciliation(self) -> ReconciliationSettings:
        return ReconciliationSettings()

    @property
    def share_codes(self) -> ShareCodeSettings:
        return ShareCodeSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each group that failed to load.
    """
    results = {}

    settings = get_settings()

    groups = {
        "reconciliation": lambda: settings.reconciliation,
        "share_codes": lambda: settings.share_codes,
        "app": lambda: settings.app,
    }
    for name, load in groups.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
