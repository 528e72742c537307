"""Pytest configuration and fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Set test environment
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DRY_RUN", "true")
os.environ.setdefault("ENVIRONMENT", "test")

from core.config import Settings
from core.db import Base, create_db_engine
from core.models import PropertyList
from domain.lists import ListService
from domain.subscriptions import SubscriptionService
from ingestion.normalizer import PropertyInput

API_KEY = "test-automation-key"


def make_settings(**overrides) -> Settings:
    """Settings for tests; keyword overrides use the environment variable names."""
    values = {
        "DATABASE_URL": "sqlite:///:memory:",
        "DRY_RUN": True,
        "ENVIRONMENT": "test",
        "API_AUTOMATION_KEY": API_KEY,
        "PRICE_PER_PROPERTY_CENTS": 200,
        "RESEND_API_KEY": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(scope="session")
def engine():
    """In-memory SQLite engine with foreign keys and working savepoints."""
    return create_db_engine("sqlite:///:memory:", settings=make_settings())


@pytest.fixture(scope="session")
def tables(engine):
    """Create all tables for testing."""
    from core import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(engine, tables) -> Session:
    """
    Returns a SQLAlchemy session for testing.

    Each test gets a fresh transaction that is rolled back after the test.
    """
    connection = engine.connect()
    transaction = connection.begin()

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=connection)
    session = SessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def sample_list(db_session, settings) -> PropertyList:
    """An empty list for Madrid."""
    return ListService(db_session, settings).create_list("Particulares Madrid", "Madrid")


@pytest.fixture
def subscribed_agent(db_session, sample_list) -> str:
    """An agent with an active subscription to ``sample_list``."""
    SubscriptionService(db_session).upsert_subscription(
        "agent-1", sample_list.id, email="agent1@example.com"
    )
    return "agent-1"


def make_inputs(count: int, prefix: str = "https://www.idealista.com/inmueble/") -> list[PropertyInput]:
    """``count`` distinct properties with sequential URLs."""
    return [
        PropertyInput(
            price=100000 + i * 1000,
            m2=60 + i,
            bedrooms=2,
            phone="636517189",
            owner_name=f"Owner {i}",
            source_url=f"{prefix}{i}/",
        )
        for i in range(count)
    ]


IDEALISTA_ITEM = {
    "titulo": "Piso en calle Mayor",
    "precio": "250.000€",
    "ubicacion": "Centro, Madrid",
    "habitaciones": "3 hab.",
    "metros": "85,5 m²",
    "descripcion": "Luminoso, exterior",
    "url": "https://www.idealista.com/inmueble/1001/",
    "anunciante": "Particular",
    "fecha_scraping": "2024-05-01",
}

FOTOCASA_ITEM = {
    "titulo": "Casa adosada",
    "precio": "60.000 €",
    "habitaciones": "3 habs",
    "metros": "70 m²",
    "url": "https://www.fotocasa.es/es/comprar/vivienda/igualada/2002",
    "telefono": "636517189",
    "anunciante": "Marta",
}
