"""Test fixtures: in-memory SQLite database, recording synthesizer, TestClient app."""

from __future__ import annotations

import os

# Must be set before eyesonyou.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SPEECH_BACKEND", "log")
os.environ.setdefault("SCAN_SOURCE_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eyesonyou.db import models  # noqa: F401  (registers tables)
from eyesonyou.db.session import Base
from eyesonyou.deps import get_db
from eyesonyou.main import app, engine_service
from eyesonyou.services.synthesizers import SpeechSynthesizer


# In-memory SQLite engine shared across a test session
_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSession = sessionmaker(autocommit=False, autoflush=False, bind=_engine)


def _override_get_db():
    db = _TestSession()
    try:
        yield db
    finally:
        db.close()


# Apply dependency override once; engine-recorded alerts go to the same DB
app.dependency_overrides[get_db] = _override_get_db
engine_service.session_factory = _TestSession


@pytest.fixture(scope="session", autouse=True)
def _create_tables():
    """Create all tables once before the test session."""
    Base.metadata.create_all(bind=_engine)
    yield
    Base.metadata.drop_all(bind=_engine)


class RecordingSynthesizer(SpeechSynthesizer):
    """Remembers what it was asked to say; tests decide when speech ends."""

    def __init__(self):
        super().__init__()
        self.spoken = []
        self.cancelled = 0
        self.current = None

    def speak(self, utterance):
        self.spoken.append(utterance.text)
        self.current = utterance

    def cancel(self):
        self.cancelled += 1
        if self.current is not None:
            utt, self.current = self.current, None
            self._report("cancelled", utt.id)

    def finish(self):
        utt, self.current = self.current, None
        self._report("finished", utt.id)

    def fail(self, error="device busy"):
        utt, self.current = self.current, None
        self._report("failed", utt.id, error=error)


@pytest.fixture
def synth():
    return RecordingSynthesizer()
