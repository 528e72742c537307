"""FastAPI application factory with global error handling."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from core.config import Settings, get_settings
from core.db import create_db_engine, create_session_factory, init_db, validate_database
from core.exceptions import (
    ConfigurationError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    InmoCaptError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)
from core.logging_config import get_logger, setup_logging
from api.routes import admin, automation, health, list_requests, lists

LOGGER = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Sets up logging, validates the database and creates missing tables.
    The app still starts when the database is unreachable so health checks
    can report it.
    """
    settings: Settings = app.state.settings
    engine: Engine = app.state.engine

    setup_logging(level=settings.log_level, json_format=settings.log_format == "json")

    if not settings.dry_run:
        LOGGER.warning("!!! LIVE MODE !!! DRY_RUN=false - Real e-mail will be sent!")
    else:
        LOGGER.info("DRY_RUN mode enabled - No real e-mail will be sent")

    LOGGER.info(
        "API application starting",
        extra={"extra_data": {
            "environment": settings.environment,
            "dry_run": settings.dry_run,
            "enabled_services": settings.get_enabled_services(),
            "database_url": engine.url.render_as_string(hide_password=True),
        }},
    )

    db_status = validate_database(engine)
    if db_status["status"] == "error":
        LOGGER.error(
            "Database validation failed - app will start without database",
            extra={"extra_data": {"errors": db_status["errors"], "database_url": db_status["database_url"]}},
        )
    elif db_status["status"] == "missing_tables":
        LOGGER.warning(
            "Missing database tables detected - attempting to create",
            extra={"extra_data": {"missing": db_status["tables_missing"]}},
        )
        try:
            init_result = init_db(engine)
            LOGGER.info(
                "Database tables created",
                extra={"extra_data": {"created": init_result["tables_created"]}},
            )
        except DatabaseError as e:
            LOGGER.error(f"Error creating database tables: {e}")
    else:
        LOGGER.info(
            "Database validation passed",
            extra={"extra_data": {"tables_found": len(db_status["tables_found"])}},
        )

    yield
    LOGGER.info("API application shutting down")


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to run with. Defaults to the cached environment settings.
        engine: Engine to use. Defaults to one built from ``settings.database_url``.

    Returns:
        Configured FastAPI application instance with:
        - CORS middleware
        - Global exception handlers
        - All API routes
    """
    settings = settings or get_settings()
    engine = engine or create_db_engine(settings=settings)

    application = FastAPI(
        title="InmoCapt API",
        description="Owner-sold property lists for real-estate agents",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    application.state.settings = settings
    application.state.engine = engine
    application.state.session_factory = create_session_factory(engine)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Global Exception Handlers
    # -------------------------------------------------------------------------

    @application.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, "not_found", str(exc))

    @application.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        LOGGER.warning(f"Conflict: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error(409, "conflict", str(exc))

    @application.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle validation errors."""
        LOGGER.warning(f"Validation error: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error(400, "validation_error", str(exc))

    @application.exception_handler(ServiceUnavailableError)
    async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError) -> JSONResponse:
        LOGGER.error(f"Service unavailable: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error(503, "service_unavailable", str(exc))

    @application.exception_handler(DatabaseError)
    async def database_handler(request: Request, exc: DatabaseError) -> JSONResponse:
        LOGGER.error(f"Database error: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error(503, "database_unavailable", "Database unavailable")

    @application.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        """Connection-level driver failures are reported like DatabaseError."""
        return await database_handler(request, DatabaseError(str(exc.orig)))

    @application.exception_handler(RateLimitError)
    async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
        LOGGER.warning(f"Rate limit hit: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error(429, "rate_limit_exceeded", str(exc))

    @application.exception_handler(ExternalServiceError)
    async def external_service_handler(request: Request, exc: ExternalServiceError) -> JSONResponse:
        LOGGER.error(f"External service error: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error(502, "external_service_error", str(exc))

    @application.exception_handler(ConfigurationError)
    async def configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        """Handle configuration errors without leaking details."""
        LOGGER.error(f"Configuration error: {exc}")
        return _error(500, "configuration_error", "Service misconfiguration")

    @application.exception_handler(InmoCaptError)
    async def app_error_handler(request: Request, exc: InmoCaptError) -> JSONResponse:
        """Handle all other application errors."""
        LOGGER.error(f"Application error: {exc}", exc_info=True)
        return _error(500, "application_error", str(exc))

    # -------------------------------------------------------------------------
    # Include Routers
    # -------------------------------------------------------------------------
    application.include_router(health.router, prefix="/health", tags=["Health"])
    application.include_router(automation.router, prefix="/automation", tags=["Automation"])
    application.include_router(admin.router, prefix="/admin", tags=["Admin"])
    application.include_router(lists.router, prefix="/lists", tags=["Lists"])
    application.include_router(list_requests.router, prefix="/list-requests", tags=["List Requests"])

    return application


__all__ = ["create_app", "lifespan"]
