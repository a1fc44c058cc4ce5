from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from faculty_chat.core import clock
from faculty_chat.core.dependencies import CurrentUser
from faculty_chat.core.realtime import EventBus
from faculty_chat.core.security import create_access_token
from faculty_chat.database.base import Base
from faculty_chat.database.session import get_db
from faculty_chat.main import app
from faculty_chat.scripts.seed_directory import seed_directory
from faculty_chat.services.chat_service import ChatService


class FrozenClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
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
def roster(db):
    seed_directory(db)


@pytest.fixture
def frozen_clock(monkeypatch):
    frozen = FrozenClock(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(clock, "utcnow", frozen)
    return frozen


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def service(db, roster, bus):
    return ChatService(db, bus=bus)


@pytest.fixture
def faculty():
    return CurrentUser(id="faculty-anya", role="faculty")


@pytest.fixture
def student():
    return CurrentUser(id="student-uid-987", role="student")


@pytest.fixture
def admin():
    return CurrentUser(id="admin-uid-123", role="admin")


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, role: str = "faculty") -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}
    return _headers
