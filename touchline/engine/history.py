"""Send/response history reader.

Answers two questions about a contact, read-only:
    - When did we last send to them?
    - Did they answer that last send, and when?

A send is any activity with event kind "sent", or any activity logged
off-platform. Its effective time is sent_at, falling back to created_at.
Reply detection belongs to the external reply matcher: this module only
follows the matched_reply_id it left on the send row.
"""

from datetime import datetime
from typing import Optional

from touchline.core.config import DEFAULT_HISTORY_WINDOW
from touchline.core.logging import get_logger
from touchline.db.database import Database
from touchline.db.models import (
    ChannelSource,
    Contact,
    EventKind,
    OutboundActivity,
    SendHistory,
    normalize_timestamp,
)

logger = get_logger(__name__)

# How many recent send rows to scan
HISTORY_WINDOW = DEFAULT_HISTORY_WINDOW


def is_send(activity: OutboundActivity) -> bool:
    """True if the activity counts as an outbound send."""
    return (
        activity.event_kind == EventKind.SENT
        or activity.channel_source == ChannelSource.OFF_PLATFORM
    )


def effective_send_time(activity: OutboundActivity) -> Optional[datetime]:
    """sent_at if known, otherwise when the row was logged."""
    return activity.sent_at or activity.created_at


def _latest(*candidates: Optional[datetime]) -> Optional[datetime]:
    present = [normalize_timestamp(c) for c in candidates if c is not None]
    return max(present) if present else None


def _last_send_from(
    sends: list[OutboundActivity], last_contacted_at: Optional[datetime]
) -> Optional[datetime]:
    return _latest(last_contacted_at, *(effective_send_time(a) for a in sends))


def _response_to(db: Database, latest_send: Optional[OutboundActivity]) -> Optional[datetime]:
    if latest_send is None or latest_send.matched_reply_id is None:
        return None
    reply = db.get_activity(latest_send.matched_reply_id)
    if reply is None:
        logger.warning(
            "Matched reply not found",
            extra={
                "context": {
                    "send_activity_id": latest_send.id,
                    "matched_reply_id": latest_send.matched_reply_id,
                }
            },
        )
        return None
    return effective_send_time(reply)


def get_last_send(
    db: Database, contact_id: int, window: Optional[int] = None
) -> Optional[datetime]:
    """Most recent outbound send time for a contact.

    Takes the maximum across the newest `window` send rows and the
    contact's denormalized last_contacted_at, which may lead or lag the log.

    Returns:
        Aware UTC datetime, or None if the contact has never been sent to
    """
    sends = db.get_send_activities(contact_id, limit=window or HISTORY_WINDOW)
    contact = db.get_contact(contact_id)
    last_contacted_at = contact.last_contacted_at if contact else None
    return _last_send_from(sends, last_contacted_at)


def get_response_after_last_send(db: Database, contact_id: int) -> Optional[datetime]:
    """Reply time for the single most recent send, if the matcher linked one."""
    latest = db.get_send_activities(contact_id, limit=1)
    return _response_to(db, latest[0] if latest else None)


def read_history(
    db: Database,
    contact_id: int,
    window: Optional[int] = None,
    contact: Optional[Contact] = None,
) -> SendHistory:
    """Both history answers from a single read of the activity log.

    Args:
        db: Database instance
        contact_id: Contact to read
        window: Send rows to scan (defaults to HISTORY_WINDOW)
        contact: The contact, when the caller already loaded it. Read
            from storage otherwise, for its last_contacted_at.

    Returns:
        SendHistory snapshot
    """
    sends = db.get_send_activities(contact_id, limit=window or HISTORY_WINDOW)
    if contact is None:
        contact = db.get_contact(contact_id)
    last_contacted_at = contact.last_contacted_at if contact else None

    return SendHistory(
        last_send_at=_last_send_from(sends, last_contacted_at),
        responded_at=_response_to(db, sends[0] if sends else None),
    )
