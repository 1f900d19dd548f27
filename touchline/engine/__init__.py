"""Engine package - Business logic layer.

This package contains the engagement cadence logic:
    - Calendar-day arithmetic
    - Send/response history
    - Cadence decisions and their storage
    - Human-owned reminder writes
    - Next-engagement alerts

Modules:
    - calendar_days: Calendar-day arithmetic in UTC
    - history: Last send and matched reply
    - cadence: Next-engagement decision
    - persistence: Stores decisions, tolerates an unmigrated schema
    - touch: Monotonic last-contacted marker
    - recompute: Evaluate and persist under the contact lock
    - reminders: Manual reminder, follow-up and do-not-contact writes
    - alerts: Due lists and the HTML digest
"""

from touchline.engine.cadence import (
    AUTO_CADENCE_DAYS,
    CadenceDecision,
    DecisionRule,
    decide,
    evaluate,
    is_due_for_follow_up,
)
from touchline.engine.calendar_days import add_days, day_diff, to_calendar_day
from touchline.engine.history import get_last_send, get_response_after_last_send, read_history
from touchline.engine.persistence import PersistResult, SkipReason, persist
from touchline.engine.recompute import RecomputeResult, recompute
from touchline.engine.touch import TouchResult, record_touch

__all__ = [
    # Calendar days
    "add_days",
    "day_diff",
    "to_calendar_day",
    # History
    "get_last_send",
    "get_response_after_last_send",
    "read_history",
    # Cadence
    "AUTO_CADENCE_DAYS",
    "CadenceDecision",
    "DecisionRule",
    "decide",
    "evaluate",
    "is_due_for_follow_up",
    # Storage
    "PersistResult",
    "SkipReason",
    "persist",
    "TouchResult",
    "record_touch",
    "RecomputeResult",
    "recompute",
]
