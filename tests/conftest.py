import os
import tempfile
import threading
from datetime import datetime, timedelta

# Must be set before the app modules read their configuration
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'slotswap-test.db')}"
)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.auth import create_access_token
from app.database import Base, build_engine, get_db
from app.domain.slots.service import SlotService
from app.main import app
from app.models import SlotStatus, User
from app.services.notification_service import NotificationHub, get_notification_hub

BASE_TIME = datetime(2026, 11, 2, 9, 0)


class RecordingChannel:
    """Notification channel that keeps every message it receives"""

    def __init__(self):
        self.messages = []
        self._lock = threading.Lock()

    def send(self, event, payload):
        with self._lock:
            self.messages.append((event, payload))

    @property
    def events(self):
        return [event for event, _ in self.messages]


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'slotswap.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def hub():
    return NotificationHub()


@pytest.fixture
def make_user(db):
    def _make(name):
        user = User(subject=f"{name}-sub", full_name=name.title(), email=f"{name}@example.com")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def make_slot(db):
    """Create a slot ``offset_hours`` after BASE_TIME, optionally made swappable"""

    def _make(owner, title="Standup", offset_hours=0, status=SlotStatus.BUSY):
        service = SlotService(db)
        start = BASE_TIME + timedelta(hours=offset_hours)
        slot = service.create(owner.id, title, start, start + timedelta(hours=1))
        if status != SlotStatus.BUSY:
            slot = service.set_status(slot.id, owner.id, status)
        return slot

    return _make


@pytest.fixture
def client(session_factory, hub):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_hub] = lambda: hub
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    def _token(name):
        return create_access_token(f"{name}-sub", name=name.title(), email=f"{name}@example.com")

    return _token


@pytest.fixture
def auth_headers(token_for):
    def _headers(name):
        return {"Authorization": f"Bearer {token_for(name)}"}

    return _headers


@pytest.fixture
def make_channel():
    return RecordingChannel
