"""Engagement cadence decision engine.

Turns a contact's stored state plus its send/response history into one
next-engagement calendar day (or none) and a reason.

Precedence, first match wins:
    1. Do-not-contact: no date, ever
    2. Manual date: a human-entered day is returned unchanged
    3. No sends yet: nothing to base a cadence on
    4. No reply to the last send: last send + cadence, UNRESPONSIVE
    5. Replied, and a connector has forwarded them: reply + cadence,
       PERIODIC_CHECK_IN
    6. Replied, anything else: no date, a human decides the next step

Usage:
    from touchline.engine.cadence import decide, evaluate

    decision = evaluate(db, contact_id)
    decision.next_date  # "2024-02-04" or None
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from touchline.core.config import DEFAULT_CADENCE_DAYS, get_config
from touchline.core.exceptions import ContactNotFoundError
from touchline.core.logging import get_logger
from touchline.db.database import Database
from touchline.db.models import (
    Contact,
    EngagementPurpose,
    PriorRelationship,
    SendHistory,
)
from touchline.engine.calendar_days import add_days, day_diff, to_calendar_day, today_calendar_day
from touchline.engine.history import read_history

logger = get_logger(__name__)

# Calendar days between automatic follow-ups. Used by both auto-cadence rules.
AUTO_CADENCE_DAYS = DEFAULT_CADENCE_DAYS


class DecisionRule(str, Enum):
    """Which precedence rule produced a decision."""

    SUPPRESSED = "suppressed"
    MANUAL_REMINDER = "manual_reminder"
    MANUAL_FOLLOW_UP = "manual_follow_up"
    NO_HISTORY = "no_history"
    UNRESPONSIVE = "unresponsive"
    CONNECTOR_FORWARDED = "connector_forwarded"
    AWAITING_HUMAN = "awaiting_human"


@dataclass(frozen=True)
class CadenceDecision:
    """Outcome of one cadence evaluation.

    Attributes:
        next_date: Next engagement calendar day, or None
        purpose: Why that day was chosen
        is_manual_override: A human decided (manual date or do-not-contact)
        is_suppressed: Contact is do-not-contact
        rule: Precedence rule that fired
        last_send_at: Most recent send the decision saw
        cadence_days: Cadence applied, for the automatic rules only
        prior_relationship: Passed through from the contact
        manual_follow_up_note: Passed through from the contact
    """

    next_date: Optional[str]
    purpose: Optional[EngagementPurpose]
    is_manual_override: bool
    is_suppressed: bool
    rule: DecisionRule
    last_send_at: Optional[datetime] = None
    cadence_days: Optional[int] = None
    prior_relationship: Optional[PriorRelationship] = None
    manual_follow_up_note: Optional[str] = None

    def days_until_due(self, today: Optional[str] = None) -> Optional[int]:
        """Calendar days from today until next_date (negative when overdue)."""
        if self.next_date is None:
            return None
        return day_diff(self.next_date, today or today_calendar_day())

    def is_due(self, today: Optional[str] = None) -> bool:
        """True when next_date is today or earlier."""
        days = self.days_until_due(today)
        return days is not None and days <= 0


def _manual_date(contact: Contact) -> tuple[Optional[str], Optional[DecisionRule]]:
    """The human-entered date that overrides the cadence, and where it came from.

    The engine's own next_engagement_date is deliberately not a source: it
    is output, and re-reading it would freeze the first automatic answer.
    """
    if contact.manual_reminder_date:
        return to_calendar_day(contact.manual_reminder_date), DecisionRule.MANUAL_REMINDER
    if contact.manual_follow_up_date:
        return to_calendar_day(contact.manual_follow_up_date), DecisionRule.MANUAL_FOLLOW_UP
    return None, None


def decide(
    contact: Contact,
    history: SendHistory,
    cadence_days: int = AUTO_CADENCE_DAYS,
) -> CadenceDecision:
    """Decide the next engagement for a contact.

    Pure: depends only on its arguments, never raises for absent optional
    data, and returns the same decision for the same inputs.

    Args:
        contact: Stored contact state
        history: Send/response history for the contact
        cadence_days: Calendar days between automatic follow-ups

    Returns:
        CadenceDecision
    """
    passthrough = {
        "last_send_at": history.last_send_at,
        "prior_relationship": contact.prior_relationship,
        "manual_follow_up_note": contact.manual_follow_up_note,
    }

    if contact.do_not_contact_again:
        return CadenceDecision(
            next_date=None,
            purpose=None,
            is_manual_override=True,
            is_suppressed=True,
            rule=DecisionRule.SUPPRESSED,
            **passthrough,
        )

    manual_day, manual_rule = _manual_date(contact)
    if manual_day is not None:
        # Only a reminder is a human asking to be nudged; a plain follow-up
        # date carries no classification.
        purpose = (
            EngagementPurpose.UNRESPONSIVE
            if manual_rule == DecisionRule.MANUAL_REMINDER
            else None
        )
        return CadenceDecision(
            next_date=manual_day,
            purpose=purpose,
            is_manual_override=True,
            is_suppressed=False,
            rule=manual_rule,
            **passthrough,
        )

    if history.last_send_at is None:
        return CadenceDecision(
            next_date=None,
            purpose=None,
            is_manual_override=False,
            is_suppressed=False,
            rule=DecisionRule.NO_HISTORY,
            **passthrough,
        )

    # Response status is checked before the pipeline snapshot.
    if history.responded_at is None:
        return CadenceDecision(
            next_date=add_days(to_calendar_day(history.last_send_at), cadence_days),
            purpose=EngagementPurpose.UNRESPONSIVE,
            is_manual_override=False,
            is_suppressed=False,
            rule=DecisionRule.UNRESPONSIVE,
            cadence_days=cadence_days,
            **passthrough,
        )

    if contact.pipeline_snapshot.is_connector_forwarded:
        anchor = max(history.responded_at, history.last_send_at)
        return CadenceDecision(
            next_date=add_days(to_calendar_day(anchor), cadence_days),
            purpose=EngagementPurpose.PERIODIC_CHECK_IN,
            is_manual_override=False,
            is_suppressed=False,
            rule=DecisionRule.CONNECTOR_FORWARDED,
            cadence_days=cadence_days,
            **passthrough,
        )

    return CadenceDecision(
        next_date=None,
        purpose=None,
        is_manual_override=False,
        is_suppressed=False,
        rule=DecisionRule.AWAITING_HUMAN,
        **passthrough,
    )


def evaluate(
    db: Database,
    contact_id: int,
    cadence_days: Optional[int] = None,
    window: Optional[int] = None,
) -> CadenceDecision:
    """Load a contact and its history, then decide.

    Args:
        db: Database instance
        contact_id: Contact to evaluate
        cadence_days: Override the configured cadence
        window: Override the configured history window

    Returns:
        CadenceDecision

    Raises:
        ContactNotFoundError: No such contact
        DatabaseError: Storage failure while reading
    """
    contact = db.get_contact(contact_id)
    if contact is None:
        raise ContactNotFoundError(contact_id)

    config = get_config()
    if cadence_days is None:
        cadence_days = config.cadence_days
    history = read_history(db, contact_id, window=window or config.history_window, contact=contact)

    decision = decide(contact, history, cadence_days=cadence_days)
    logger.debug(
        "Cadence evaluated",
        extra={
            "context": {
                "contact_id": contact_id,
                "rule": decision.rule.value,
                "next_date": decision.next_date,
            }
        },
    )
    return decision


def is_due_for_follow_up(db: Database, contact_id: int, today: Optional[str] = None) -> bool:
    """True if the contact's next engagement is today or overdue.

    Raises:
        ContactNotFoundError: No such contact
    """
    return evaluate(db, contact_id).is_due(today)
