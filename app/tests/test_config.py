"""
Tests for configuration validation
"""
import pytest
from pydantic import ValidationError
from app.core.config import Settings


def _settings(**overrides):
    values = {"DATABASE_URL": "postgresql://test", "JWT_SECRET_KEY": "test-key"}
    values.update(overrides)
    return Settings(**values)


def test_prod_settings_rejects_wildcard_origins():
    settings = _settings(JWT_SECRET_KEY="a" * 32, APP_ENV="prod", ALLOWED_ORIGINS="*")
    with pytest.raises(ValueError, match="ALLOWED_ORIGINS"):
        settings.validate_production()


def test_prod_settings_rejects_short_jwt_secret():
    settings = _settings(JWT_SECRET_KEY="short", APP_ENV="prod", ALLOWED_ORIGINS="https://example.com")
    with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
        settings.validate_production()


def test_local_settings_allow_wildcard_origins():
    settings = _settings(APP_ENV="local", ALLOWED_ORIGINS="*")
    settings.validate_production()
    assert settings.get_allowed_origins_list() == ["*"]


def test_get_allowed_origins_list_splits_and_trims():
    settings = _settings(ALLOWED_ORIGINS="https://example.com, https://app.example.com,")
    assert settings.get_allowed_origins_list() == ["https://example.com", "https://app.example.com"]


def test_unknown_app_env_is_rejected():
    with pytest.raises(ValidationError):
        _settings(APP_ENV="qa")


def test_log_level_is_normalized():
    assert _settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_ledger_defaults():
    settings = _settings()
    assert settings.DEFAULT_EARNED_DAYS == 12
    assert settings.DEFAULT_SICK_DAYS == 8
    assert settings.DEFAULT_CASUAL_DAYS == 8
    assert settings.YEAR_END_CARRY_FORWARD_MAX == 5
    assert settings.TZ == "Asia/Kolkata"


def test_negative_carry_forward_cap_is_rejected():
    with pytest.raises(ValidationError):
        _settings(YEAR_END_CARRY_FORWARD_MAX=-1)
