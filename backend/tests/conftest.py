"""Pytest fixtures: SQLite database per test, recording fakes for push and S3."""
import os
import uuid
from datetime import timedelta

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-at-least-32-bytes")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from botocore.exceptions import ClientError
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from event_manager.database import Base, get_db
from event_manager.main import app
from event_manager.realtime import EventNotifier, get_notifier
from event_manager.services.event_query import current_date
from event_manager.services.upload_service import ImageStorage, get_image_storage

# Import all models so they register with Base.metadata
from event_manager.models.user import User                # noqa: F401
from event_manager.models.event import Event              # noqa: F401
from event_manager.models.attendee import EventAttendee   # noqa: F401

SQLITE_URL = os.environ["DATABASE_URL"]


class FakeSocketServer:
    """Stands in for socketio.AsyncServer and records every emit."""

    def __init__(self):
        self.emitted = []

    async def emit(self, event, data, room=None):
        self.emitted.append({"event": event, "data": data, "room": room})

    def of(self, event_name):
        return [e for e in self.emitted if e["event"] == event_name]


class FakeS3Client:
    """Records upload_fileobj calls; optionally fails like S3 would."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.uploads.append({"bucket": bucket, "key": key, "body": fileobj.read(), "extra": ExtraArgs})


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session, closed after the test."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def socket_server():
    return FakeSocketServer()


@pytest.fixture(scope="function")
def s3_client():
    return FakeS3Client()


@pytest.fixture(scope="function")
def client(db_engine, socket_server, s3_client):
    """FastAPI TestClient with database, notifier and image storage overridden."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    notifier = EventNotifier(socket_server)
    storage = ImageStorage(
        bucket="test-bucket",
        base_url="https://cdn.example.com/",
        folder="event-management",
        client=s3_client,
    )

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_image_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: drive the API the way a client would, return response JSON
# ---------------------------------------------------------------------------
def days_from_today(days: int) -> str:
    """ISO date offset from "today" as the server computes it (settings.TIMEZONE)."""
    return (current_date() + timedelta(days=days)).isoformat()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_user(client: TestClient, name: str = "Test User", email: str = None, password: str = "secret123") -> dict:
    """Helper — POST /api/auth/register and return {"user", "token"}."""
    resp = client.post("/api/auth/register", json={
        "name": name,
        "email": email or f"user-{uuid.uuid4().hex[:8]}@example.com",
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(client: TestClient, token: str, **overrides) -> dict:
    """Helper — POST /api/events and return the created event."""
    payload = {
        "title": "Test Event",
        "description": "An event used in tests",
        "date": days_from_today(30),
        "time": "18:30",
        "location": "Main Hall",
        "category": "Workshop",
    }
    payload.update(overrides)
    resp = client.post("/api/events", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, resp.text
    return resp.json()
