"""Tests for human-owned reminder writes."""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone

import pytest

from touchline.core.exceptions import ContactNotFoundError, ValidationError
from touchline.db.database import Database
from touchline.db.models import EngagementPurpose
from touchline.engine.cadence import DecisionRule
from touchline.engine.reminders import (
    clear_follow_up,
    clear_reminder,
    set_do_not_contact,
    set_follow_up,
    set_reminder,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def sent_contact(memory_db: Database, add_contact, add_send) -> int:
    """Contact with one unanswered send on 2024-01-28."""
    contact_id = add_contact(memory_db)
    add_send(memory_db, contact_id, utc(2024, 1, 28))
    return contact_id


class TestReminder:
    """Test set_reminder / clear_reminder."""

    def test_set_reminder_overrides_cadence(self, memory_db: Database, sent_contact: int):
        """The manual day is stored and becomes the next engagement."""
        result = set_reminder(memory_db, sent_contact, "2024-03-01")
        assert result.next_engagement_date == "2024-03-01"
        assert result.decision.rule == DecisionRule.MANUAL_REMINDER
        stored = memory_db.get_contact(sent_contact)
        assert stored.manual_reminder_date == "2024-03-01"
        assert stored.next_engagement_purpose == EngagementPurpose.UNRESPONSIVE

    def test_accepts_date_objects(self, memory_db: Database, sent_contact: int):
        """date and datetime inputs are normalized."""
        assert set_reminder(memory_db, sent_contact, date(2024, 3, 2)).next_engagement_date == "2024-03-02"
        assert (
            set_reminder(memory_db, sent_contact, utc(2024, 3, 3, 8)).next_engagement_date
            == "2024-03-03"
        )

    def test_clear_reminder_restores_cadence(self, memory_db: Database, sent_contact: int):
        """Clearing hands control back to the automatic rules."""
        set_reminder(memory_db, sent_contact, "2024-03-01")
        result = clear_reminder(memory_db, sent_contact)
        assert result.next_engagement_date == "2024-02-04"
        assert memory_db.get_contact(sent_contact).manual_reminder_date is None

    @pytest.mark.parametrize("bad", ["", "soon", "2024-13-40", None])
    def test_invalid_dates(self, memory_db: Database, sent_contact: int, bad):
        """Unparseable input is a validation error."""
        with pytest.raises(ValidationError):
            set_reminder(memory_db, sent_contact, bad)

    def test_unknown_contact(self, memory_db: Database):
        """Writers raise NotFound for unknown contacts."""
        with pytest.raises(ContactNotFoundError):
            set_reminder(memory_db, 999, "2024-03-01")


class TestFollowUp:
    """Test set_follow_up / clear_follow_up."""

    def test_set_follow_up_with_note(self, memory_db: Database, sent_contact: int):
        """Date and note are stored; the purpose is unclassified."""
        result = set_follow_up(memory_db, sent_contact, "2024-04-01", note="Ask about Q3")
        assert result.next_engagement_date == "2024-04-01"
        stored = memory_db.get_contact(sent_contact)
        assert stored.manual_follow_up_note == "Ask about Q3"
        assert stored.next_engagement_purpose is None

    def test_new_follow_up_replaces_note(self, memory_db: Database, sent_contact: int):
        """A new follow-up without a note drops the old one."""
        set_follow_up(memory_db, sent_contact, "2024-04-01", note="old")
        set_follow_up(memory_db, sent_contact, "2024-04-08")
        assert memory_db.get_contact(sent_contact).manual_follow_up_note is None

    def test_clear_follow_up(self, memory_db: Database, sent_contact: int):
        """Clearing removes date and note."""
        set_follow_up(memory_db, sent_contact, "2024-04-01", note="note")
        result = clear_follow_up(memory_db, sent_contact)
        stored = memory_db.get_contact(sent_contact)
        assert stored.manual_follow_up_date is None
        assert stored.manual_follow_up_note is None
        assert result.next_engagement_date == "2024-02-04"


class TestDoNotContact:
    """Test set_do_not_contact."""

    def test_suppression_clears_next_engagement(self, memory_db: Database, sent_contact: int):
        """Turning it on clears the stored date and the follow-up."""
        set_follow_up(memory_db, sent_contact, "2024-04-01", note="note")
        result = set_do_not_contact(memory_db, sent_contact)
        assert result.next_engagement_date is None
        assert result.decision.is_suppressed is True
        stored = memory_db.get_contact(sent_contact)
        assert stored.do_not_contact_again is True
        assert stored.manual_follow_up_date is None
        assert stored.manual_follow_up_note is None
        assert stored.next_engagement_date is None

    def test_suppression_beats_reminder(self, memory_db: Database, sent_contact: int):
        """A reminder set on a suppressed contact stays dormant."""
        set_do_not_contact(memory_db, sent_contact)
        result = set_reminder(memory_db, sent_contact, "2024-03-01")
        assert result.next_engagement_date is None

    def test_lifting_restores_cadence(self, memory_db: Database, sent_contact: int):
        """Turning it off lets the cadence run again."""
        set_do_not_contact(memory_db, sent_contact)
        result = set_do_not_contact(memory_db, sent_contact, flag=False)
        assert result.next_engagement_date == "2024-02-04"
        assert memory_db.get_contact(sent_contact).do_not_contact_again is False

    def test_suppression_mid_reminder_survives(
        self, memory_db: Database, sent_contact: int, monkeypatch: pytest.MonkeyPatch
    ):
        """Suppression landing while a reminder is written is not undone."""
        write_reminder = memory_db.set_manual_reminder

        def suppress_first(contact_id, day):
            set_do_not_contact(memory_db, contact_id)
            return write_reminder(contact_id, day)

        monkeypatch.setattr(memory_db, "set_manual_reminder", suppress_first)

        set_reminder(memory_db, sent_contact, "2024-03-01")

        stored = memory_db.get_contact(sent_contact)
        assert stored.do_not_contact_again is True
        assert stored.manual_reminder_date == "2024-03-01"
        assert stored.next_engagement_date is None

    @pytest.mark.concurrency
    def test_concurrent_writers_keep_suppression(self, temp_db: Database, add_contact, add_send):
        """Reminder writes racing a suppression never revert the flag."""
        contact_id = add_contact(temp_db)
        add_send(temp_db, contact_id, utc(2024, 1, 28))
        days = [f"2024-03-{day:02d}" for day in range(1, 11)]

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(set_reminder, temp_db, contact_id, day) for day in days[:5]]
            futures.append(pool.submit(set_do_not_contact, temp_db, contact_id))
            futures += [pool.submit(set_reminder, temp_db, contact_id, day) for day in days[5:]]
            for future in futures:
                future.result()

        stored = temp_db.get_contact(contact_id)
        assert stored.do_not_contact_again is True
        assert stored.next_engagement_date is None
