"""Tests for recompute."""

import threading
from datetime import datetime, timezone

import pytest

from touchline.core.exceptions import ContactNotFoundError
from touchline.db.database import Database
from touchline.engine.recompute import recompute


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestRecompute:
    """Test recompute."""

    def test_stores_decision(self, memory_db: Database, add_contact, add_send):
        """The decision is evaluated and persisted."""
        contact_id = add_contact(memory_db)
        add_send(memory_db, contact_id, utc(2024, 1, 28))
        result = recompute(memory_db, contact_id)
        assert result.updated is True
        assert result.next_engagement_date == "2024-02-04"
        assert memory_db.get_contact(contact_id).next_engagement_date == "2024-02-04"

    def test_idempotent(self, memory_db: Database, add_contact, add_send):
        """Two recomputes with no change agree."""
        contact_id = add_contact(memory_db)
        add_send(memory_db, contact_id, utc(2024, 1, 28))
        first = recompute(memory_db, contact_id)
        second = recompute(memory_db, contact_id)
        assert first.decision == second.decision
        assert memory_db.get_contact(contact_id).next_engagement_date == "2024-02-04"

    def test_unknown_contact(self, memory_db: Database):
        """NotFound propagates."""
        with pytest.raises(ContactNotFoundError):
            recompute(memory_db, 999)

    def test_legacy_schema(self, legacy_db: Database, add_contact, add_send):
        """The decision is still returned when it cannot be stored."""
        contact_id = add_contact(legacy_db)
        add_send(legacy_db, contact_id, utc(2024, 1, 28))
        result = recompute(legacy_db, contact_id)
        assert result.updated is False
        assert result.next_engagement_date == "2024-02-04"

    def test_cadence_override(self, memory_db: Database, add_contact, add_send):
        """An explicit cadence beats the configured one."""
        contact_id = add_contact(memory_db)
        add_send(memory_db, contact_id, utc(2024, 1, 28))
        assert recompute(memory_db, contact_id, cadence_days=1).next_engagement_date == "2024-01-29"

    @pytest.mark.concurrency
    def test_concurrent_recomputes_converge(self, temp_db: Database, add_contact, add_send):
        """Overlapping recomputes for one contact all land on the same answer."""
        contact_id = add_contact(temp_db)
        add_send(temp_db, contact_id, utc(2024, 1, 28))
        errors = []

        def worker():
            try:
                recompute(temp_db, contact_id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert errors == []
        assert temp_db.get_contact(contact_id).next_engagement_date == "2024-02-04"
