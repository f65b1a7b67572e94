"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Tables are created before and dropped
after every test, so no test data persists.
"""

import os

# Must be set before chat_ledger.config is imported.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("CHANNEL_SECRET", "test-channel-secret")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from chat_ledger.main import app
from chat_ledger.models import Category
from chat_ledger.models.base import Base, get_db
from chat_ledger.services.catalog_service import CatalogService


# SQLite keeps the suite free of external services.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class MutableClock:
    """A clock callable tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """A TestClient whose requests share db_session."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    """Wednesday 2026-03-18, 12:00 (UTC for codes, local for the ledger)."""
    return MutableClock(datetime(2026, 3, 18, 12, 0, 0))


@pytest.fixture
def default_categories(db_session):
    """Seed the default categories and return them by name."""
    CatalogService(db_session).seed_default_categories()
    db_session.commit()
    categories = db_session.execute(select(Category)).scalars().all()
    return {c.name: c for c in categories}
