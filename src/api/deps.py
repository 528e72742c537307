"""FastAPI dependencies: database sessions, settings and caller identity."""
from __future__ import annotations

import hmac
from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session, sessionmaker

from core.config import Settings
from core.exceptions import ConfigurationError


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_session_factory(request: Request) -> sessionmaker:
    return request.app.state.session_factory


def get_db(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Commits when the route returns, rolls back if it raises.

    Yields:
        SQLAlchemy Session instance.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_readonly_db(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a read-only database session.

    Yields:
        SQLAlchemy Session instance (always rolled back).
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


# =============================================================================
# Caller identity
# =============================================================================


def require_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """
    Authenticate automation and admin callers by static API key.

    Returns:
        The actor id recorded on uploads.

    Raises:
        HTTPException: 401 when the key is missing or wrong.
        ConfigurationError: When no key is configured on the server.
    """
    expected = settings.api_automation_key
    if not expected:
        raise ConfigurationError("API_AUTOMATION_KEY is not configured")
    if not x_api_key or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return "automation"


def get_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """Agent identity forwarded by the upstream gateway."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id


def get_user_email(x_user_email: Optional[str] = Header(None, alias="X-User-Email")) -> Optional[str]:
    return (x_user_email or "").strip() or None


__all__ = [
    "get_app_settings",
    "get_session_factory",
    "get_db",
    "get_readonly_db",
    "require_api_key",
    "get_user_id",
    "get_user_email",
]
