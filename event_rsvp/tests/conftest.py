import datetime as dt
import os
import tempfile

# Point the app at a throwaway file database before it is imported. A file
# (not :memory:) lets concurrent test threads hold independent connections.
_db_dir = tempfile.mkdtemp(prefix="event_rsvp_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ.setdefault("JWT_SECRET", "test-secret")

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.orm.session import Session  # noqa: E402

from event_rsvp.core.celery_config import celery_app  # noqa: E402
from event_rsvp.core.security import create_access_token  # noqa: E402
from event_rsvp.database.db import Base, engine, get_db  # noqa: E402
from event_rsvp.main import app  # noqa: E402
from event_rsvp.models.attendances import Attendance  # noqa: E402
from event_rsvp.models.events import Event  # noqa: E402
from event_rsvp.services import locking  # noqa: E402

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# Tasks run in-process; no broker in tests
celery_app.conf.task_always_eager = True
celery_app.conf.task_store_eager_result = False


@pytest.fixture(autouse=True)
def setup_database():
    """Give every test an empty schema."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


# Override the database dependency
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture(autouse=True)
def redis_client(fake_redis, monkeypatch: pytest.MonkeyPatch):
    """Route every per-event lock through an in-process fake Redis."""
    monkeypatch.setattr(locking, "get_redis_client", lambda: fake_redis)
    return fake_redis


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def make_event(db_session: Session):
    """Insert an event directly, optionally with attendees in join order."""

    def _make_event(
        title: str = "Test Event",
        capacity: int = 10,
        creator_id: str = "owner",
        attendees: list[str] | None = None,
    ) -> Event:
        event = Event(
            title=title,
            description="An event",
            date=dt.date(2030, 1, 1),
            time="18:00",
            location="Town Hall",
            capacity=capacity,
            current_attendees=0,
            creator_id=creator_id,
        )
        db_session.add(event)
        db_session.flush()
        start = dt.datetime(2020, 1, 1, tzinfo=dt.timezone.utc)
        for position, user_id in enumerate(attendees or []):
            db_session.add(
                Attendance(
                    event_id=event.id,
                    user_id=user_id,
                    joined_at=start + dt.timedelta(seconds=position),
                )
            )
        event.current_attendees = len(attendees or [])
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def event_payload():
    return {
        "title": "Launch Party",
        "description": "Celebrating the launch",
        "date": "2030-05-01",
        "time": "19:30",
        "location": "Rooftop",
        "capacity": 3,
    }
