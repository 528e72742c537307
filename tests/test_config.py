"""Test configuration loading."""
from __future__ import annotations

import pytest

from conftest import make_settings
from core.config import PROJECT_ROOT, get_settings


def test_settings_load():
    """Test that settings load correctly."""
    get_settings.cache_clear()
    settings = get_settings()

    assert settings.dry_run is True
    assert settings.default_page_size <= settings.max_page_size
    assert settings.log_level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def test_log_settings_are_normalized():
    settings = make_settings(LOG_LEVEL="debug", LOG_FORMAT="JSON")

    assert settings.log_level == "DEBUG"
    assert settings.log_format == "json"


def test_invalid_log_level():
    with pytest.raises(ValueError):
        make_settings(LOG_LEVEL="chatty")


def test_currency_is_upper_cased():
    assert make_settings(DEFAULT_CURRENCY=" eur ").default_currency == "EUR"
    with pytest.raises(ValueError):
        make_settings(DEFAULT_CURRENCY="EURO")


def test_production_requires_automation_key():
    with pytest.raises(ValueError):
        make_settings(ENVIRONMENT="production", API_AUTOMATION_KEY=None)

    assert make_settings(ENVIRONMENT="production").api_automation_key


def test_relative_sqlite_path_is_anchored_to_project_root():
    settings = make_settings(DATABASE_URL="sqlite:///./data/inmocapt.db")

    assert settings.database_url == f"sqlite:///{(PROJECT_ROOT / 'data/inmocapt.db').as_posix()}"
    assert make_settings(DATABASE_URL="sqlite:///:memory:").database_url == "sqlite:///:memory:"


def test_cors_origins():
    settings = make_settings(CORS_ORIGINS="https://a.example.com, https://b.example.com,")

    assert settings.get_cors_origins() == ["https://a.example.com", "https://b.example.com"]


def test_feature_detection():
    settings = make_settings(RESEND_API_KEY="re_test", PRICE_PER_PROPERTY_CENTS=0)

    assert settings.is_email_enabled()
    assert not settings.is_price_recalculation_enabled()
    assert settings.get_enabled_services() == ["resend", "automation_api"]
