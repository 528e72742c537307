"""Configuration management for the InmoCapt ingestion service.

All configuration is loaded from environment variables and/or .env file.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root detection
PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = PROJECT_ROOT / ".env"

DATABASE_FILE = PROJECT_ROOT / "inmocapt.db"
ABSOLUTE_DATABASE_URL = f"sqlite:///{DATABASE_FILE.as_posix()}"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def _resolve_database_url(url: str) -> str:
    """Anchor a relative SQLite file path at PROJECT_ROOT; anything else is returned as is."""
    prefix = "sqlite:///"
    if not url.startswith(prefix):
        return url

    path = url[len(prefix):]
    if path in ("", ":memory:") or path.startswith("/") or ":" in path:
        return url
    return f"{prefix}{(PROJECT_ROOT / path.removeprefix('./')).as_posix()}"


class Settings(BaseSettings):
    """
    Runtime configuration powered by environment variables and .env overrides.

    All settings can be configured via:
    1. Environment variables (highest priority)
    2. .env file in project root (loaded automatically)
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------
    database_url: str = Field(
        default=ABSOLUTE_DATABASE_URL,
        alias="DATABASE_URL",
        description="SQLAlchemy connection string.",
    )
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE", ge=1)
    db_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW", ge=0)
    db_pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT", ge=1)

    # -------------------------------------------------------------------------
    # Automation / admin access
    # -------------------------------------------------------------------------
    api_automation_key: Optional[str] = Field(default=None, alias="API_AUTOMATION_KEY")
    cors_origins: str = Field(
        default="http://localhost:5173",
        alias="CORS_ORIGINS",
        description="Comma-separated list of allowed origins.",
    )

    # -------------------------------------------------------------------------
    # E-mail (Resend)
    # -------------------------------------------------------------------------
    resend_api_key: Optional[str] = Field(default=None, alias="RESEND_API_KEY")
    resend_api_url: str = Field(default="https://api.resend.com/emails", alias="RESEND_API_URL")
    email_from: str = Field(default="InmoCapt <no-reply@inmocapt.com>", alias="EMAIL_FROM")
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")
    email_timeout_seconds: int = Field(default=10, alias="EMAIL_TIMEOUT_SECONDS", ge=1)
    email_max_retries: int = Field(default=3, alias="EMAIL_MAX_RETRIES", ge=1)

    # -------------------------------------------------------------------------
    # Lists & properties
    # -------------------------------------------------------------------------
    price_per_property_cents: int = Field(
        default=200,
        alias="PRICE_PER_PROPERTY_CENTS",
        ge=0,
        description="List price added per property on upload (0 disables recalculation).",
    )
    default_currency: str = Field(default="EUR", alias="DEFAULT_CURRENCY")
    default_page_size: int = Field(default=50, alias="DEFAULT_PAGE_SIZE", ge=1)
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE", ge=1)
    max_comment_length: int = Field(default=2000, alias="MAX_COMMENT_LENGTH", ge=1)
    phone_default_region: str = Field(default="ES", alias="PHONE_DEFAULT_REGION")

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    dry_run: bool = Field(default=True, alias="DRY_RUN")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")  # "text" or "json"
    environment: str = Field(default="local", alias="ENVIRONMENT")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in LOG_FORMATS:
            raise ValueError(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")
        return fmt

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Currency codes are three-letter ISO 4217 codes."""
        code = v.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError("default_currency must be a 3-letter ISO code")
        return code

    @model_validator(mode="after")
    def validate_automation_key(self) -> "Settings":
        """The automation upload endpoint must be protected in production."""
        if self.environment == "production" and not self.api_automation_key:
            raise ValueError("API_AUTOMATION_KEY required in production mode")
        return self

    @model_validator(mode="after")
    def resolve_database_url(self) -> "Settings":
        """Convert relative SQLite paths to absolute paths."""
        self.database_url = _resolve_database_url(self.database_url)
        return self

    # -------------------------------------------------------------------------
    # Helper Methods for Feature Detection
    # -------------------------------------------------------------------------

    def is_email_enabled(self) -> bool:
        """E-mail is sent only when a Resend key is configured."""
        return bool(self.resend_api_key)

    def get_cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def is_price_recalculation_enabled(self) -> bool:
        return self.price_per_property_cents > 0

    def get_enabled_services(self) -> list[str]:
        """Get list of enabled external services."""
        services = []
        if self.is_email_enabled():
            services.append("resend")
        if self.api_automation_key:
            services.append("automation_api")
        return services


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached. To reload settings,
    call `get_settings.cache_clear()` first.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Clear settings cache and reload from environment.

    Useful for testing or after modifying .env file.
    """
    get_settings.cache_clear()
    return get_settings()
