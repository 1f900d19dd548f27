"""Human-owned engagement fields.

The writers behind "remind me on", "contact next on" and "do not contact
again". The cadence engine never changes these fields; a person does,
through these functions, and each write is followed by a recompute so the
stored next engagement reflects it immediately.

Each writer updates only its own columns and holds the contact's lock
across the write and the recompute, so two people editing the same
contact cannot undo each other's change.

Usage:
    from touchline.engine.reminders import set_reminder, set_do_not_contact

    set_reminder(db, contact_id, "2024-03-01")
    set_do_not_contact(db, contact_id)
"""

from datetime import date, datetime
from typing import Callable, Optional, Union

from touchline.core.exceptions import ContactNotFoundError, ValidationError
from touchline.core.logging import get_logger
from touchline.core.tasks import get_contact_locks
from touchline.db.database import Database
from touchline.engine.calendar_days import to_calendar_day
from touchline.engine.recompute import RecomputeResult, recompute

logger = get_logger(__name__)

DateInput = Union[str, date, datetime]


def _parse_day(value: DateInput, field_name: str) -> str:
    """Normalize user input to a calendar day.

    Raises:
        ValidationError: Input is not a date or ISO date/timestamp
    """
    if isinstance(value, (date, datetime)):
        return to_calendar_day(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    try:
        return to_calendar_day(value.strip())
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name} date format: {value!r}") from e


def _write_and_recompute(
    db: Database, contact_id: int, write: Callable[[], bool], action: str
) -> RecomputeResult:
    with get_contact_locks().hold(contact_id):
        if not write():
            raise ContactNotFoundError(contact_id)
        logger.info(action, extra={"context": {"contact_id": contact_id}})
        return recompute(db, contact_id)


def set_reminder(db: Database, contact_id: int, day: DateInput) -> RecomputeResult:
    """Set a manual "remind me on" day.

    Raises:
        ContactNotFoundError: No such contact
        ValidationError: Unparseable date
    """
    reminder_day = _parse_day(day, "reminder")
    return _write_and_recompute(
        db,
        contact_id,
        lambda: db.set_manual_reminder(contact_id, reminder_day),
        f"Reminder set for {reminder_day}",
    )


def clear_reminder(db: Database, contact_id: int) -> RecomputeResult:
    """Remove the manual reminder; the cadence takes over again."""
    return _write_and_recompute(
        db, contact_id, lambda: db.set_manual_reminder(contact_id, None), "Reminder cleared"
    )


def set_follow_up(
    db: Database,
    contact_id: int,
    day: DateInput,
    note: Optional[str] = None,
) -> RecomputeResult:
    """Set a manual "contact next on" day with an optional note.

    The note replaces any earlier one and is never interpreted.

    Raises:
        ContactNotFoundError: No such contact
        ValidationError: Unparseable date
    """
    follow_up_day = _parse_day(day, "follow-up")
    return _write_and_recompute(
        db,
        contact_id,
        lambda: db.set_manual_follow_up(contact_id, follow_up_day, note),
        f"Follow-up set for {follow_up_day}",
    )


def clear_follow_up(db: Database, contact_id: int) -> RecomputeResult:
    """Remove the manual follow-up day and its note."""
    return _write_and_recompute(
        db,
        contact_id,
        lambda: db.set_manual_follow_up(contact_id, None, None),
        "Follow-up cleared",
    )


def set_do_not_contact(db: Database, contact_id: int, flag: bool = True) -> RecomputeResult:
    """Turn the do-not-contact flag on or off.

    Turning it on also drops any pending follow-up day and note. The
    recompute that follows clears the stored next engagement.

    Raises:
        ContactNotFoundError: No such contact
    """
    action = "Do-not-contact set" if flag else "Do-not-contact lifted"
    return _write_and_recompute(
        db, contact_id, lambda: db.set_do_not_contact(contact_id, flag), action
    )
