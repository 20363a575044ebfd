"""Tests for environment-driven configuration."""

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from billsplit.audit import configure_logging
from billsplit.config import AppSettings, get_settings, validate_all_settings
from billsplit.config.settings import ReconciliationSettings, ShareCodeSettings
from billsplit.models import ReconciliationPolicy


class TestReconciliationSettings:
    """Tests for RECONCILE_* settings."""

    def test_defaults(self):
        settings = ReconciliationSettings()
        assert settings.epsilon == Decimal("0.02")
        assert settings.max_abs == Decimal("5.00")
        assert settings.max_pct == Decimal("0.015")
        assert settings.enforce_caps is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RECONCILE_MAX_ABS", "2.50")
        monkeypatch.setenv("RECONCILE_ENFORCE_CAPS", "false")

        settings = get_settings().reconciliation

        assert settings.max_abs == Decimal("2.50")
        assert settings.enforce_caps is False

    def test_pct_above_one_rejected(self, monkeypatch):
        monkeypatch.setenv("RECONCILE_MAX_PCT", "1.5")
        with pytest.raises(ValidationError):
            ReconciliationSettings()

    def test_policy_defaults_follow_settings(self):
        policy = ReconciliationPolicy.from_settings()
        assert policy.epsilon == Decimal("0.02")
        assert policy.max_abs == Decimal("5.00")


class TestShareCodeSettings:
    """Tests for SHARE_CODE_* settings."""

    def test_base_url_trailing_slash_stripped(self, monkeypatch):
        monkeypatch.setenv("SHARE_CODE_BASE_URL", "https://split.example/")
        assert ShareCodeSettings().base_url == "https://split.example"

    def test_length_bounds(self, monkeypatch):
        monkeypatch.setenv("SHARE_CODE_LENGTH", "2")
        with pytest.raises(ValidationError):
            ShareCodeSettings()


class TestLogLevel:
    """Tests for LOG_LEVEL and configure_logging()."""

    @pytest.fixture(autouse=True)
    def restore_level(self):
        yield
        configure_logging("INFO")

    def test_normalised(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", " debug ")
        assert AppSettings().log_level == "DEBUG"

    def test_unknown_level_rejected(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_applied_to_package_loggers(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        configure_logging()

        share_codes = logging.getLogger("billsplit.share_codes")
        assert not share_codes.isEnabledFor(logging.INFO)
        assert share_codes.isEnabledFor(logging.WARNING)

    def test_explicit_level(self):
        configure_logging("DEBUG")
        assert logging.getLogger("billsplit.audit").isEnabledFor(logging.DEBUG)


class TestValidateAllSettings:
    """Tests for validate_all_settings()."""

    def test_all_valid(self):
        assert validate_all_settings() == {
            "reconciliation": True,
            "share_codes": True,
            "app": True,
        }

    def test_reports_broken_group(self, monkeypatch):
        monkeypatch.setenv("SHARE_CODE_MAX_ATTEMPTS", "0")

        results = validate_all_settings()

        assert results["share_codes"] is False
        assert "share_codes_error" in results
        assert results["reconciliation"] is True
