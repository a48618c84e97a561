"""
Pytest fixtures: in-memory SQLite, in-memory artifact store and a stepping clock.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from machine_health.config import Settings
from machine_health.database import Base
from machine_health.repository import AnalysisRecordRepository
from machine_health.schemas import AudioUpload
from machine_health.storage import InMemoryArtifactStore
from tests.factories import StepClock
import machine_health.models  # noqa: F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def repository(db_session):
    return AnalysisRecordRepository(db_session)


@pytest.fixture
def store():
    return InMemoryArtifactStore()


@pytest.fixture
def settings():
    return Settings(classifier_delay_seconds=0, classifier_timeout_seconds=5.0, artifact_backend="memory")


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def upload():
    return AudioUpload(filename="pump_bay3.wav", content=b"RIFF\x24\x00\x00\x00WAVEfmt ", content_type="audio/wav")
