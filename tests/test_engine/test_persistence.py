"""Tests for the persistence adapter."""

from datetime import datetime, timezone

import pytest

from touchline.core.exceptions import DatabaseError
from touchline.db.database import Database
from touchline.db.models import Contact, EngagementPurpose, SendHistory
from touchline.engine.cadence import decide
from touchline.engine.persistence import SkipReason, persist


def _unresponsive():
    return decide(Contact(), SendHistory(last_send_at=datetime(2024, 1, 28, tzinfo=timezone.utc)))


class TestPersist:
    """Test persist."""

    def test_writes_date_and_purpose(self, memory_db: Database, add_contact):
        """A dated decision is stored."""
        contact_id = add_contact(memory_db)
        result = persist(memory_db, contact_id, _unresponsive())
        assert result.updated is True
        assert result.skipped is None
        stored = memory_db.get_contact(contact_id)
        assert stored.next_engagement_date == "2024-02-04"
        assert stored.next_engagement_purpose == EngagementPurpose.UNRESPONSIVE

    def test_null_decision_clears(self, memory_db: Database, add_contact):
        """A decision without a date clears date and purpose."""
        contact_id = add_contact(memory_db)
        persist(memory_db, contact_id, _unresponsive())
        result = persist(memory_db, contact_id, decide(Contact(), SendHistory()))
        assert result.updated is True
        stored = memory_db.get_contact(contact_id)
        assert stored.next_engagement_date is None
        assert stored.next_engagement_purpose is None

    def test_schema_not_ready(self, legacy_db: Database, add_contact):
        """Missing columns give updated=False without raising."""
        contact_id = add_contact(legacy_db)
        result = persist(legacy_db, contact_id, _unresponsive())
        assert result.updated is False
        assert result.skipped == SkipReason.SCHEMA_NOT_READY

    def test_missing_contact(self, memory_db: Database):
        """A vanished contact is not an error."""
        result = persist(memory_db, 999, _unresponsive())
        assert result.updated is False
        assert result.skipped == SkipReason.CONTACT_MISSING

    def test_other_failures_propagate(self, memory_db: Database, add_contact):
        """Storage failures other than a missing column are raised."""
        contact_id = add_contact(memory_db)
        memory_db._get_connection().execute("DROP TABLE contacts")
        with pytest.raises(DatabaseError):
            persist(memory_db, contact_id, _unresponsive())
