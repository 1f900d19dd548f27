"""Monotonic contact-touch recorder.

Advances a contact's last_contacted_at when a send is logged. The marker
only ever moves forward: an older or equal observation is a no-op, no
matter what order sends are reported in.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from touchline.core.logging import get_logger
from touchline.db.database import Database

logger = get_logger(__name__)


@dataclass(frozen=True)
class TouchResult:
    """Whether last_contacted_at moved."""

    updated: bool


def record_touch(
    db: Database, contact_id: int, observed_send_time: Optional[datetime]
) -> TouchResult:
    """Record an outbound touch.

    Args:
        db: Database instance
        contact_id: Contact that was sent to
        observed_send_time: When the send happened

    Returns:
        TouchResult(updated=True) only if the new time is strictly later
        than the stored one. Unknown contacts and missing times are no-ops.
    """
    if not contact_id or observed_send_time is None:
        return TouchResult(updated=False)

    updated = db.advance_last_contacted_at(contact_id, observed_send_time)
    if updated:
        logger.info(
            "Last contacted advanced",
            extra={
                "context": {
                    "contact_id": contact_id,
                    "last_contacted_at": observed_send_time.isoformat(),
                }
            },
        )
    return TouchResult(updated=updated)
