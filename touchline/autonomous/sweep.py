"""Recompute sweep - catches anything the triggers missed.

Runs recompute over every contact, or only the stale ones: never computed,
or with activity, a touch or another input change newer than their last
computation. One failing contact is recorded and the sweep moves on.

Usage:
    from touchline.autonomous.sweep import run_sweep

    result = run_sweep(db)
    print(result.contacts_updated, result.errors)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from touchline.core.config import get_config
from touchline.core.exceptions import SchemaNotReadyError
from touchline.core.logging import get_logger
from touchline.core.tasks import TaskManager, TaskResult
from touchline.db.database import Database
from touchline.engine.persistence import SkipReason
from touchline.engine.recompute import RecomputeResult, recompute

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Result of a sweep."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    stale_only: bool = True
    contacts_checked: int = 0
    contacts_recomputed: int = 0
    contacts_updated: int = 0
    skipped_schema: int = 0
    skipped_missing: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def _select_contacts(db: Database, stale_only: bool) -> list[int]:
    if not stale_only:
        return db.list_contact_ids()
    try:
        return db.get_stale_contact_ids()
    except SchemaNotReadyError:
        # Nothing has ever been stored, so everything is stale.
        logger.debug("Engine columns missing, sweeping every contact")
        return db.list_contact_ids()


def _tally(result: SweepResult, contact_id: int, task: TaskResult) -> None:
    if not task.success:
        result.errors.append(f"Contact {contact_id}: {task.error}")
        return
    outcome: RecomputeResult = task.result
    result.contacts_recomputed += 1
    if outcome.updated:
        result.contacts_updated += 1
    elif outcome.skipped == SkipReason.SCHEMA_NOT_READY:
        result.skipped_schema += 1
    elif outcome.skipped == SkipReason.CONTACT_MISSING:
        # Deleted between selection and write.
        result.skipped_missing += 1


def run_sweep(
    db: Database,
    stale_only: bool = True,
    max_workers: Optional[int] = None,
) -> SweepResult:
    """Recompute next engagements in bulk.

    Args:
        db: Database instance
        stale_only: Only contacts whose stored output may be out of date
        max_workers: Concurrent recomputes, defaults to TOUCHLINE_SWEEP_WORKERS

    Returns:
        SweepResult with counts and per-contact errors
    """
    result = SweepResult(started_at=datetime.now(), stale_only=stale_only)
    workers = max(1, max_workers if max_workers is not None else get_config().sweep_workers)
    logger.info(
        "Sweep starting",
        extra={"context": {"stale_only": stale_only, "workers": workers}},
    )

    try:
        contact_ids = _select_contacts(db, stale_only)
    except Exception as e:
        result.errors.append(f"Contact selection: {e}")
        logger.error(f"Sweep could not select contacts: {e}", exc_info=True)
        result.completed_at = datetime.now()
        return result

    result.contacts_checked = len(contact_ids)

    manager = TaskManager(max_workers=workers)
    try:
        futures = [
            (contact_id, manager.submit(f"recompute-{contact_id}", recompute, db, contact_id))
            for contact_id in contact_ids
        ]
        for contact_id, future in futures:
            _tally(result, contact_id, future.result())
    finally:
        manager.shutdown(wait=True)

    result.completed_at = datetime.now()
    logger.info(
        "Sweep complete",
        extra={
            "context": {
                "checked": result.contacts_checked,
                "recomputed": result.contacts_recomputed,
                "updated": result.contacts_updated,
                "skipped_schema": result.skipped_schema,
                "skipped_missing": result.skipped_missing,
                "errors": len(result.errors),
            }
        },
    )
    return result
