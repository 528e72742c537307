"""Automation routes: scraper uploads authenticated by API key."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from sqlalchemy.orm import Session, sessionmaker

from api.deps import get_app_settings, get_db, get_session_factory, require_api_key
from core.config import Settings
from core.logging_config import get_logger
from domain.ingestion import IngestionService
from services.notification import notify_after_ingestion

router = APIRouter()
LOGGER = get_logger(__name__)


@router.post("/upload")
def automation_upload(
    background_tasks: BackgroundTasks,
    payload: Any = Body(...),
    create_if_not_exists: bool = Query(False, alias="createIfNotExists"),
    actor_id: str = Depends(require_api_key),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """
    Upload properties in any supported format.

    The target list comes from ``listId``, from ``listName`` + ``location``,
    or (Fotocasa) from ``ubicacion``. With ``createIfNotExists=true`` a
    missing list is created.
    """
    result = IngestionService(db, settings).ingest_automation(
        payload,
        actor_id=actor_id,
        create_if_missing=create_if_not_exists,
    )
    db.commit()

    if result.should_notify:
        background_tasks.add_task(notify_after_ingestion, session_factory, result, settings=settings)

    LOGGER.info(
        "Automation upload completed",
        extra={"list_id": result.list_id, "extra_data": {"list_created": result.list_created}},
    )
    return result.to_dict()


__all__ = ["router"]
