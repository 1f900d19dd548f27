"""Persistence adapter for cadence decisions.

Writes a decision's next engagement date and purpose onto the contact.
During a schema rollout the target columns may not exist yet; that one
failure is an expected outcome and reports updated=False. Every other
storage failure propagates to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from touchline.core.exceptions import SchemaNotReadyError
from touchline.core.logging import get_logger
from touchline.db.database import Database
from touchline.engine.cadence import CadenceDecision

logger = get_logger(__name__)


class SkipReason(str, Enum):
    """Why a decision did not reach storage."""

    SCHEMA_NOT_READY = "schema_not_ready"
    CONTACT_MISSING = "contact_missing"


@dataclass(frozen=True)
class PersistResult:
    """Whether the decision reached storage, and if not, why."""

    updated: bool
    skipped: Optional[SkipReason] = None


def persist(db: Database, contact_id: int, decision: CadenceDecision) -> PersistResult:
    """Store a decision on the contact.

    A decision without a date clears both the date and the purpose.

    Args:
        db: Database instance
        contact_id: Contact to update
        decision: Decision to store

    Returns:
        PersistResult(updated=True), or updated=False with the SkipReason
        when the schema is not ready or the contact vanished

    Raises:
        DatabaseError: Any storage failure other than a missing column
    """
    purpose = decision.purpose if decision.next_date is not None else None

    try:
        updated = db.write_next_engagement(contact_id, decision.next_date, purpose)
    except SchemaNotReadyError as e:
        logger.debug(
            "Next engagement not persisted: schema not ready",
            extra={"context": {"contact_id": contact_id, "column": e.column}},
        )
        return PersistResult(updated=False, skipped=SkipReason.SCHEMA_NOT_READY)

    if not updated:
        logger.warning(
            "Next engagement not persisted: contact no longer exists",
            extra={"context": {"contact_id": contact_id}},
        )
        return PersistResult(updated=False, skipped=SkipReason.CONTACT_MISSING)

    logger.info(
        "Next engagement persisted",
        extra={
            "context": {
                "contact_id": contact_id,
                "next_engagement_date": decision.next_date,
                "purpose": purpose.value if purpose else None,
            }
        },
    )
    return PersistResult(updated=True)
