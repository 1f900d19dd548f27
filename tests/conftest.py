"""Shared pytest fixtures for Touchline tests.

Fixtures:
    - isolated_config: Clean TOUCHLINE_* environment for every test
    - memory_db: Fresh in-memory SQLite database
    - temp_db: Fresh file-backed database
    - legacy_db: Database still on schema v1 (no engine columns)
    - sample_contact: Sample Contact record
    - add_contact: Factory that stores a contact and returns its ID
    - add_send: Factory that stores a send and returns its ID
    - add_reply: Factory that stores a reply matched to a send
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest

from touchline.core.config import Config, reset_config
from touchline.db.database import Database
from touchline.db.models import (
    ChannelSource,
    Contact,
    EventKind,
    OutboundActivity,
    PipelineName,
    PipelineSnapshot,
    PipelineStage,
    PriorRelationship,
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the developer's environment and .env out of every test."""
    for key in list(os.environ):
        if key.startswith("TOUCHLINE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TOUCHLINE_DB_PATH", str(tmp_path / "data" / "touchline.db"))
    monkeypatch.setenv("TOUCHLINE_LOG_PATH", str(tmp_path / "logs"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a temporary database for testing.

    Yields:
        Database connected to temp file, cleaned up after test
    """
    db_path = tmp_path / "test.db"
    db = Database(str(db_path))
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def memory_db() -> Generator[Database, None, None]:
    """Create an in-memory database for fast tests.

    Yields:
        Database using :memory:, no cleanup needed
    """
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def legacy_db() -> Generator[Database, None, None]:
    """In-memory database that has not been migrated to the engine columns."""
    db = Database(":memory:")
    db.initialize(target_version=1)
    yield db
    db.close()


@pytest.fixture
def sample_contact() -> Contact:
    """Sample Contact record for testing."""
    return Contact(
        first_name="Ada",
        last_name="Byron",
        email="ada@example.com",
        prior_relationship=PriorRelationship.WARM,
        pipeline_snapshot=PipelineSnapshot(PipelineName.PROSPECT, PipelineStage.INTEREST),
    )


@pytest.fixture
def mock_config(tmp_path: Path) -> Config:
    """Test configuration with temp paths."""
    return Config(
        db_path=tmp_path / "test.db",
        log_path=tmp_path / "logs",
        debug=True,
    )


@pytest.fixture
def add_contact() -> Callable[..., int]:
    """Factory: store a contact built from keyword arguments."""

    def _add(db: Database, **fields) -> int:
        fields.setdefault("first_name", "Test")
        fields.setdefault("last_name", "Contact")
        return db.create_contact(Contact(**fields))

    return _add


@pytest.fixture
def add_send() -> Callable[..., int]:
    """Factory: store a platform send at the given time."""

    def _add(
        db: Database,
        contact_id: int,
        sent_at: Optional[datetime],
        created_at: Optional[datetime] = None,
        channel_source: ChannelSource = ChannelSource.PLATFORM,
    ) -> int:
        return db.create_activity(
            OutboundActivity(
                contact_id=contact_id,
                event_kind=EventKind.SENT,
                channel_source=channel_source,
                sent_at=sent_at,
                created_at=created_at or sent_at,
                subject="Checking in",
            )
        )

    return _add


@pytest.fixture
def add_reply() -> Callable[..., int]:
    """Factory: store a reply and link it to a send."""

    def _add(db: Database, contact_id: int, send_id: int, received_at: datetime) -> int:
        reply_id = db.create_activity(
            OutboundActivity(
                contact_id=contact_id,
                event_kind=EventKind.RECEIVED,
                sent_at=received_at,
                created_at=received_at,
                subject="Re: Checking in",
            )
        )
        db.set_matched_reply(send_id, reply_id)
        return reply_id

    return _add


# Markers for different test types
def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "database: marks tests requiring database")
    config.addinivalue_line("markers", "concurrency: marks tests that run threads")
