"""
Pytest configuration.

DATABASE_URL must be set before anything under coachbook is imported:
coachbook.core.database creates the engine at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["BOOKING_TIMEZONE"] = "America/New_York"
os.environ["ADMIN_EMAIL"] = "coach@example.com"

from datetime import time

import pytest
from fastapi.testclient import TestClient

from coachbook.core.database import Base, SessionLocal, engine, get_db
from coachbook.main import app
from coachbook.models.availability import AvailabilitySlot
from coachbook.routers.auth import create_access_token
from coachbook.scheduling.session_types import SessionType


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "coach@example.com", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def wednesday_rule(db):
    """Wednesdays 09:00-12:00 New York, hourly vod-review slots."""
    slot = AvailabilitySlot(
        day_of_week=3,
        start_time=time(9, 0),
        end_time=time(12, 0),
        session_type=SessionType.vod_review,
        slot_duration=60,
        is_active=True,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot
