"""Recompute triggers.

Each hook performs the write that changed a contact's engagement inputs,
then recomputes the contact's next engagement. The triggering write is
what the caller asked for: its errors propagate. The recompute that
follows is bookkeeping: a failure there is logged at ERROR and reported in
the result, never raised, so logging an email never fails because the
cadence could not be refreshed.

Usage:
    from touchline.autonomous.triggers import log_send

    result = log_send(db, OutboundActivity(contact_id=42, sent_at=now))
    if result.recompute_error:
        ...  # the sweep will pick it up
"""

from dataclasses import dataclass
from typing import Optional, Union

from touchline.core.exceptions import ContactNotFoundError, ValidationError
from touchline.core.logging import get_logger
from touchline.db.database import Database
from touchline.db.models import (
    EventKind,
    OutboundActivity,
    PipelineName,
    PipelineSnapshot,
    PipelineStage,
    utcnow,
)
from touchline.engine.history import effective_send_time, is_send
from touchline.engine.recompute import RecomputeResult, recompute
from touchline.engine.touch import record_touch

logger = get_logger(__name__)


@dataclass
class TriggerResult:
    """Outcome of a trigger.

    Attributes:
        contact_id: Contact the trigger touched
        activity_id: Activity created by the trigger, if any
        touch_updated: Whether last_contacted_at moved
        recompute: Recompute outcome, if it succeeded
        recompute_error: Why the recompute failed, if it did
    """

    contact_id: int
    activity_id: Optional[int] = None
    touch_updated: bool = False
    recompute: Optional[RecomputeResult] = None
    recompute_error: Optional[str] = None

    @property
    def recomputed(self) -> bool:
        return self.recompute is not None


def _recompute_quietly(db: Database, result: TriggerResult, trigger: str) -> TriggerResult:
    """Run the follow-up recompute, recording rather than raising failures."""
    try:
        result.recompute = recompute(db, result.contact_id)
    except Exception as e:
        result.recompute_error = str(e)
        logger.error(
            f"Recompute after {trigger} failed: {e}",
            extra={"context": {"contact_id": result.contact_id, "trigger": trigger}},
            exc_info=True,
        )
    return result


def log_send(db: Database, activity: OutboundActivity) -> TriggerResult:
    """Log an outbound activity and refresh the contact's cadence.

    Sends also advance last_contacted_at. Non-send events (opens, clicks)
    are logged and still recompute, since a reply row can change the
    answer.

    Args:
        db: Database instance
        activity: Activity to append; created_at defaults to now

    Returns:
        TriggerResult

    Raises:
        ContactNotFoundError: No such contact
        DatabaseError: The activity could not be stored
    """
    if db.get_contact(activity.contact_id) is None:
        raise ContactNotFoundError(activity.contact_id)

    if activity.created_at is None:
        activity.created_at = utcnow()
    activity.id = db.create_activity(activity)
    result = TriggerResult(contact_id=activity.contact_id, activity_id=activity.id)

    if is_send(activity):
        result.touch_updated = record_touch(
            db, activity.contact_id, effective_send_time(activity)
        ).updated

    logger.info(
        "Activity logged",
        extra={
            "context": {
                "contact_id": activity.contact_id,
                "activity_id": activity.id,
                "event_kind": EventKind(activity.event_kind).value,
            }
        },
    )
    return _recompute_quietly(db, result, "send")


def log_reply_match(db: Database, send_activity_id: int, reply_activity_id: int) -> TriggerResult:
    """Store the reply matcher's result and refresh the cadence.

    Args:
        db: Database instance
        send_activity_id: Send the reply answers
        reply_activity_id: The reply activity

    Returns:
        TriggerResult

    Raises:
        ValidationError: Either activity does not exist
        DatabaseError: The match could not be stored
    """
    send = db.get_activity(send_activity_id)
    if send is None:
        raise ValidationError(f"Send activity not found: {send_activity_id}")
    if db.get_activity(reply_activity_id) is None:
        raise ValidationError(f"Reply activity not found: {reply_activity_id}")

    db.set_matched_reply(send_activity_id, reply_activity_id)
    logger.info(
        "Reply matched",
        extra={
            "context": {
                "contact_id": send.contact_id,
                "send_activity_id": send_activity_id,
                "reply_activity_id": reply_activity_id,
            }
        },
    )
    return _recompute_quietly(db, TriggerResult(contact_id=send.contact_id), "reply match")


def on_pipeline_stage_changed(
    db: Database,
    contact_id: int,
    pipeline: Union[PipelineName, str, None],
    stage: Union[PipelineStage, str, None],
) -> TriggerResult:
    """Snap a new pipeline/stage onto the contact and refresh the cadence.

    Unknown pipeline or stage names are stored as empty.

    Raises:
        ContactNotFoundError: No such contact
    """
    snapshot = PipelineSnapshot.from_raw(pipeline, stage)
    if not db.update_pipeline_snapshot(contact_id, snapshot):
        raise ContactNotFoundError(contact_id)
    logger.info(
        "Pipeline stage changed",
        extra={
            "context": {
                "contact_id": contact_id,
                "pipeline": snapshot.pipeline.value if snapshot.pipeline else None,
                "stage": snapshot.stage.value if snapshot.stage else None,
            }
        },
    )
    return _recompute_quietly(db, TriggerResult(contact_id=contact_id), "stage change")


def request_recompute(db: Database, contact_id: int) -> TriggerResult:
    """On-demand recompute, e.g. after a bulk import.

    Raises:
        ContactNotFoundError: No such contact
    """
    if db.get_contact(contact_id) is None:
        raise ContactNotFoundError(contact_id)
    return _recompute_quietly(db, TriggerResult(contact_id=contact_id), "request")
