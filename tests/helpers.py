"""Shared fixtures for store, gateway and API tests: SQLite databases and fakes."""

import os
import tempfile
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from showroom.core.database import make_engine, make_session_factory
from showroom.models import Base


class FakeClock:
    """Settable clock shared by the codec, stores and gateway under test."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RecordingMailer:
    """Mailer double: keeps every (recipient, token) it was handed."""

    def __init__(self) -> None:
        self.password_resets: list[tuple[str, str]] = []
        self.verifications: list[tuple[str, str]] = []

    def send_password_reset(self, recipient: str, token: str) -> None:
        self.password_resets.append((recipient, token))

    def send_email_verification(self, recipient: str, token: str) -> None:
        self.verifications.append((recipient, token))


def memory_database() -> tuple[Engine, sessionmaker[Session]]:
    """Single shared in-memory connection; fine for single-threaded tests."""
    engine = make_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return engine, make_session_factory(engine)


def file_database() -> tuple[Engine, sessionmaker[Session], tempfile.TemporaryDirectory]:
    """File-backed database with one connection per checkout, for concurrency tests."""
    tmpdir = tempfile.TemporaryDirectory()
    path = os.path.join(tmpdir.name, "showroom-test.db")
    engine = make_engine(
        f"sqlite:///{path}",
        poolclass=NullPool,
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return engine, make_session_factory(engine), tmpdir
