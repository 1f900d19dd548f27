"""Tests for the send/response history reader."""

from datetime import datetime, timezone

from touchline.db.database import Database
from touchline.db.models import ChannelSource, EventKind, OutboundActivity
from touchline.engine.history import (
    effective_send_time,
    get_last_send,
    get_response_after_last_send,
    is_send,
    read_history,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestSendClassification:
    """Test what counts as a send."""

    def test_sent_is_send(self):
        """event_kind sent is a send."""
        assert is_send(OutboundActivity(event_kind=EventKind.SENT))

    def test_off_platform_is_send(self):
        """Anything logged off-platform is a send."""
        assert is_send(
            OutboundActivity(
                event_kind=EventKind.OPENED, channel_source=ChannelSource.OFF_PLATFORM
            )
        )

    def test_open_is_not_send(self):
        """Platform opens are not sends."""
        assert not is_send(OutboundActivity(event_kind=EventKind.OPENED))

    def test_effective_time_falls_back(self):
        """created_at stands in for a missing sent_at."""
        activity = OutboundActivity(created_at=utc(2024, 1, 5))
        assert effective_send_time(activity) == utc(2024, 1, 5)
        activity.sent_at = utc(2024, 1, 4)
        assert effective_send_time(activity) == utc(2024, 1, 4)


class TestLastSend:
    """Test get_last_send."""

    def test_no_history(self, memory_db: Database, add_contact):
        """A contact never sent to has no last send."""
        contact_id = add_contact(memory_db)
        assert get_last_send(memory_db, contact_id) is None

    def test_max_over_sends(self, memory_db: Database, add_contact, add_send):
        """Latest effective send time wins, even if logged earlier."""
        contact_id = add_contact(memory_db)
        add_send(memory_db, contact_id, utc(2024, 1, 20), created_at=utc(2024, 1, 25))
        add_send(memory_db, contact_id, utc(2024, 1, 22), created_at=utc(2024, 1, 22))
        assert get_last_send(memory_db, contact_id) == utc(2024, 1, 22)

    def test_missing_sent_at_uses_created_at(self, memory_db: Database, add_contact, add_send):
        """Rows without sent_at count at their logging time."""
        contact_id = add_contact(memory_db)
        add_send(memory_db, contact_id, None, created_at=utc(2024, 1, 9))
        assert get_last_send(memory_db, contact_id) == utc(2024, 1, 9)

    def test_last_contacted_at_can_lead(self, memory_db: Database, add_contact, add_send):
        """The denormalized touch counts when newer than the log."""
        contact_id = add_contact(memory_db, last_contacted_at=utc(2024, 2, 1))
        add_send(memory_db, contact_id, utc(2024, 1, 15))
        assert get_last_send(memory_db, contact_id) == utc(2024, 2, 1)

    def test_last_contacted_at_alone(self, memory_db: Database, add_contact):
        """A touch with no activity rows still counts as a send."""
        contact_id = add_contact(memory_db, last_contacted_at=utc(2024, 1, 28, 9))
        assert get_last_send(memory_db, contact_id) == utc(2024, 1, 28, 9)

    def test_window_limits_rows(self, memory_db: Database, add_contact, add_send):
        """Only the newest rows by log order are scanned."""
        contact_id = add_contact(memory_db)
        add_send(memory_db, contact_id, utc(2024, 3, 1), created_at=utc(2024, 1, 1))
        add_send(memory_db, contact_id, utc(2024, 1, 2), created_at=utc(2024, 1, 2))
        assert get_last_send(memory_db, contact_id, window=1) == utc(2024, 1, 2)
        assert get_last_send(memory_db, contact_id, window=2) == utc(2024, 3, 1)


class TestResponse:
    """Test get_response_after_last_send."""

    def test_no_reply(self, memory_db: Database, add_contact, add_send):
        """An unmatched send has no response."""
        contact_id = add_contact(memory_db)
        add_send(memory_db, contact_id, utc(2024, 1, 10))
        assert get_response_after_last_send(memory_db, contact_id) is None

    def test_matched_reply(self, memory_db: Database, add_contact, add_send, add_reply):
        """The matched reply's time is returned."""
        contact_id = add_contact(memory_db)
        send_id = add_send(memory_db, contact_id, utc(2024, 1, 10))
        add_reply(memory_db, contact_id, send_id, utc(2024, 1, 12))
        assert get_response_after_last_send(memory_db, contact_id) == utc(2024, 1, 12)

    def test_only_latest_send_counts(self, memory_db: Database, add_contact, add_send, add_reply):
        """A reply to an older send does not answer a newer one."""
        contact_id = add_contact(memory_db)
        first = add_send(memory_db, contact_id, utc(2024, 1, 10))
        add_reply(memory_db, contact_id, first, utc(2024, 1, 11))
        add_send(memory_db, contact_id, utc(2024, 1, 20))
        assert get_response_after_last_send(memory_db, contact_id) is None

    def test_read_history_combines(self, memory_db: Database, add_contact, add_send, add_reply):
        """read_history returns both answers."""
        contact_id = add_contact(memory_db)
        send_id = add_send(memory_db, contact_id, utc(2024, 1, 10))
        add_reply(memory_db, contact_id, send_id, utc(2024, 1, 12))
        history = read_history(memory_db, contact_id)
        assert history.last_send_at == utc(2024, 1, 10)
        assert history.responded_at == utc(2024, 1, 12)
        assert history.has_sends and history.has_response
