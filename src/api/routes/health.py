"""Health check routes."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from api.deps import get_app_settings, get_readonly_db
from core.config import Settings
from core.db import missing_required_tables
from core.logging_config import get_logger
from core.utils import utcnow

router = APIRouter()
LOGGER = get_logger(__name__)


@router.get("")
async def health_check(settings: Settings = Depends(get_app_settings)) -> Dict[str, Any]:
    """Basic health check - always returns OK."""
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "dry_run": settings.dry_run,
        "environment": settings.environment,
    }


@router.get("/detailed")
def detailed_health_check(
    db: Session = Depends(get_readonly_db),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """Detailed health check including database tables and e-mail configuration."""
    status = "healthy"
    checks: Dict[str, Any] = {}

    try:
        db.execute(text("SELECT 1"))
        missing = missing_required_tables(db.connection())
        checks["database"] = {
            "status": "healthy" if not missing else "degraded",
            "connected": True,
            "tables_missing": missing,
        }
        if missing:
            status = "degraded"
    except Exception as e:
        LOGGER.error(f"Database health check failed: {e}")
        status = "unhealthy"
        checks["database"] = {"status": "unhealthy", "error": str(e)}

    checks["email"] = {
        "configured": settings.is_email_enabled(),
        "dry_run": settings.dry_run,
    }
    checks["automation_api"] = {"configured": bool(settings.api_automation_key)}

    return {
        "status": status,
        "timestamp": utcnow().isoformat(),
        "checks": checks,
    }


__all__ = ["router"]
