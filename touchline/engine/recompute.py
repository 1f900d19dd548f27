"""Recompute and store a contact's next engagement.

The entry point every trigger calls: evaluate the cadence, persist the
decision. Recomputes for one contact are serialized through the
per-contact lock, so each write comes from one consistent read. Safe to
call any number of times.
"""

from dataclasses import dataclass
from typing import Optional

from touchline.core.logging import get_logger
from touchline.core.tasks import get_contact_locks
from touchline.db.database import Database
from touchline.engine.cadence import CadenceDecision, evaluate
from touchline.engine.persistence import SkipReason, persist

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecomputeResult:
    """Outcome of a recompute.

    Attributes:
        updated: Whether the decision reached storage
        next_engagement_date: Computed calendar day, or None
        decision: Full decision
        skipped: Why the decision was not stored, when updated is False
    """

    updated: bool
    next_engagement_date: Optional[str]
    decision: CadenceDecision
    skipped: Optional[SkipReason] = None


def recompute(
    db: Database,
    contact_id: int,
    cadence_days: Optional[int] = None,
) -> RecomputeResult:
    """Evaluate and persist the next engagement for one contact.

    Args:
        db: Database instance
        contact_id: Contact to recompute
        cadence_days: Override the configured cadence

    Returns:
        RecomputeResult

    Raises:
        ContactNotFoundError: No such contact
        DatabaseError: Storage failure; retrying is safe
    """
    with get_contact_locks().hold(contact_id):
        decision = evaluate(db, contact_id, cadence_days=cadence_days)
        result = persist(db, contact_id, decision)

    logger.info(
        "Cadence recomputed",
        extra={
            "context": {
                "contact_id": contact_id,
                "rule": decision.rule.value,
                "next_engagement_date": decision.next_date,
                "updated": result.updated,
            }
        },
    )
    return RecomputeResult(
        updated=result.updated,
        next_engagement_date=decision.next_date,
        decision=decision,
        skipped=result.skipped,
    )
