"""Shared fixtures: throwaway SQLite stores, fake identity collaborator."""

import os
import tempfile

# Point the default engine somewhere disposable before the package is imported.
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{tempfile.mkdtemp(prefix='admin_console_')}/default.db"
)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import admin_backend.models  # noqa: F401
from admin_backend.db.base import Base
from admin_backend.schemas.schemas import ReauthResult
from admin_backend.services.audit_service import AuditTrail, LocalAuditBuffer


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'audit.db'}", connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def unreachable_session():
    raise OperationalError("connect", {}, Exception("audit database is unreachable"))


@pytest.fixture
def trail(session_factory):
    return AuditTrail(session_factory=session_factory, fallback=LocalAuditBuffer(200))


@pytest.fixture
def offline_trail():
    """Audit trail whose durable sink is down."""
    return AuditTrail(session_factory=unreachable_session, fallback=LocalAuditBuffer(200))


class FakeIdentity:
    """Identity collaborator that accepts a single password."""

    def __init__(self, password="correct horse"):
        self.password = password
        self.calls = []

    async def reauthenticate(self, credential):
        self.calls.append(credential)
        if credential == self.password:
            return ReauthResult(success=True)
        return ReauthResult(success=False, error="Incorrect password.")


@pytest.fixture
def identity():
    return FakeIdentity()


class RecordingOperation:
    """Async operation double that records each invocation."""

    def __init__(self, result="done", error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, reason, credential):
        self.calls.append((reason, credential))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def operation():
    return RecordingOperation()
