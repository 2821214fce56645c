"""
Pytest fixtures for testing
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from flowtrack.config import Settings
from flowtrack.domain.statuses import Role, TaskStatus
from flowtrack.infrastructure.db.session import Base
from flowtrack.infrastructure.db.models import User, TaskModel


def _create_schema(engine):
    # SQLite doesn't support JSONB, remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)


@pytest.fixture
def db_engine():
    """In-memory SQLite shared across threads (TestClient), with JSONB→JSON mapping."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite: every session gets its own connection."""
    engine = create_engine(f"sqlite:///{tmp_path / 'flowtrack.db'}")
    _create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env"""
    return Settings(DATABASE_URL="sqlite:///:memory:", ACK_SECRET="test-ack-secret", _env_file=None)


class RecordingMailer:
    """Mailer double: records every message, answers with `ok`."""

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: list[dict] = []

    def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html})
        return self.ok


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def make_mailer():
    return RecordingMailer


@pytest.fixture
def make_user(db_session):
    def _make(user_id: int, *, email: str | None = "auto", name: str | None = None,
              role: Role = Role.USER, manager_id: int | None = None) -> User:
        u = User(
            id=user_id,
            email=f"user{user_id}@example.com" if email == "auto" else email,
            name=name,
            role=role,
            manager_id=manager_id,
        )
        db_session.add(u)
        db_session.commit()
        return u
    return _make


@pytest.fixture
def make_task(db_session):
    def _make(owner_id: int, due_date, *, status: TaskStatus = TaskStatus.TODO,
              title: str | None = None, updated_at: datetime | None = None) -> TaskModel:
        t = TaskModel(
            owner_id=owner_id,
            title=title or f"task due {due_date}",
            due_date=due_date,
            status=status,
            updated_at=updated_at or datetime(2024, 6, 1, tzinfo=timezone.utc),
        )
        db_session.add(t)
        db_session.commit()
        return t
    return _make
