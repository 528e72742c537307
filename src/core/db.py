"""Database engine and session management.

Engines and session factories are built explicitly and handed to the code
that needs them; nothing here opens a connection at import time.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Union

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from .config import Settings, get_settings
from .exceptions import DatabaseError
from .logging_config import get_logger

LOGGER = get_logger(__name__)

# Required tables that MUST exist for the system to function
REQUIRED_TABLES = ["lists", "properties", "property_agent_state", "list_updates", "list_requests"]


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_db_engine(
    database_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    Args:
        database_url: Connection string. Defaults to ``settings.database_url``.
        settings: Settings used for pool configuration.

    Returns:
        Configured Engine.
    """
    settings = settings or get_settings()
    url = database_url or settings.database_url

    if _is_sqlite(url):
        in_memory = ":memory:" in url or url in ("sqlite://", "sqlite:///")
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},  # Allow multi-threaded access
            # A single shared connection keeps an in-memory database alive
            poolclass=StaticPool if in_memory else NullPool,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            # pysqlite defers BEGIN on its own, which breaks SAVEPOINT;
            # SQLAlchemy emits BEGIN itself in the "begin" hook below
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA busy_timeout=30000")  # 30 second timeout
            cursor.close()

        @event.listens_for(engine, "begin")
        def do_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return engine

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,  # Verify connection before usage
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Return a session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Commits on success, rolls back on any exception and always closes.

    Yields:
        SQLAlchemy Session object.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> Dict[str, Any]:
    """
    Create any missing tables.

    Returns:
        Dict with initialization results.

    Raises:
        DatabaseError: If the database cannot be reached or the tables cannot be created.
    """
    # Import models to ensure they are registered with Base
    from . import models  # noqa: F401

    result: Dict[str, Any] = {
        "status": "success",
        "tables_created": [],
        "tables_existing": [],
        "warnings": [],
    }

    try:
        existing_tables = set(inspect(engine).get_table_names())
        Base.metadata.create_all(bind=engine)
        final_tables = set(inspect(engine).get_table_names())
    except SQLAlchemyError as e:
        url = engine.url.render_as_string(hide_password=True)
        raise DatabaseError(f"Could not initialize database at {url}: {e}") from e

    result["tables_created"] = sorted(final_tables - existing_tables)
    result["tables_existing"] = sorted(existing_tables)

    missing_required = missing_required_tables(engine)
    if missing_required:
        result["warnings"].append(f"Missing required tables: {missing_required}")
        result["status"] = "warning"

    if result["tables_created"]:
        LOGGER.info("Created tables: %s", ", ".join(result["tables_created"]))

    return result


def missing_required_tables(bind: Union[Engine, Connection]) -> List[str]:
    """Return the required tables that are not present."""
    existing_tables = inspect(bind).get_table_names()
    return [t for t in REQUIRED_TABLES if t not in existing_tables]


def validate_database(engine: Engine) -> Dict[str, Any]:
    """
    Validate database connection and required tables.

    Call this at application startup to ensure the database is ready.

    Returns:
        Dict with validation results.
    """
    result: Dict[str, Any] = {
        "status": "ok",
        "database_url": engine.url.render_as_string(hide_password=True),
        "tables_found": [],
        "tables_missing": [],
        "errors": [],
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        result["tables_found"] = inspect(engine).get_table_names()
        missing = missing_required_tables(engine)
        result["tables_missing"] = missing

        if missing:
            result["status"] = "missing_tables"
            result["errors"].append(f"Missing required tables: {missing}")

    except Exception as e:
        result["status"] = "error"
        result["errors"].append(str(e))

    return result


__all__ = [
    "Base",
    "REQUIRED_TABLES",
    "create_db_engine",
    "create_session_factory",
    "session_scope",
    "init_db",
    "missing_required_tables",
    "validate_database",
]
