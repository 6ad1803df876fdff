# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
import uuid
from datetime import UTC, datetime

import pytest

# Set test environment
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("LOG_JSON", "false")

# Default "now" for database-backed tests
NOW = datetime(2026, 2, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool

    from eventkeeper import models  # noqa: F401
    from eventkeeper.database import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session bound to the in-memory engine."""
    from sqlalchemy.orm import sessionmaker

    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Clock pinned to NOW."""
    from eventkeeper.services.retention import FixedClock

    return FixedClock(NOW)


@pytest.fixture
def make_event(db):
    """Factory inserting an event row. Returns the event id."""
    from eventkeeper.models import Event

    def _make_event(**overrides) -> uuid.UUID:
        values = {
            "title": "Neighbourhood Potluck",
            "creator_id": uuid.uuid4(),
            "state": "PUBLISHED",
            "start_at": datetime(2026, 3, 1, 18, 0, tzinfo=UTC),
            "end_at": datetime(2026, 3, 1, 21, 0, tzinfo=UTC),
            "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        }
        values.update(overrides)
        event = Event(**values)
        db.add(event)
        db.commit()
        return event.id

    return _make_event


@pytest.fixture
def client(db, clock):
    """Test client sharing the test session and clock."""
    from fastapi.testclient import TestClient

    from eventkeeper.database import get_db
    from eventkeeper.main import app
    from eventkeeper.services.retention import get_clock

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()
