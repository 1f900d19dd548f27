"""Data models and enumerations for Touchline.

All enums stored as TEXT in SQLite.
Dataclasses use frozen=False for mutability during processing, except the
value objects the cadence engine reads (PipelineSnapshot, SendHistory).

This module defines:
    - Enumerations for all categorical fields
    - Dataclasses for database records
    - Timestamp helpers (UTC normalization, storage format)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

# =============================================================================
# ENUMERATIONS
# =============================================================================


class EventKind(str, Enum):
    """Kind of outbound activity event."""

    SENT = "sent"
    RECEIVED = "received"
    OPENED = "opened"
    CLICKED = "clicked"
    BOUNCED = "bounced"


class ChannelSource(str, Enum):
    """Where an activity came from.

    PLATFORM: Sent through this system
    OFF_PLATFORM: Logged by hand from another mail client
    """

    PLATFORM = "PLATFORM"
    OFF_PLATFORM = "OFF_PLATFORM"


class EngagementPurpose(str, Enum):
    """Why the next engagement date was chosen."""

    UNRESPONSIVE = "UNRESPONSIVE"
    PERIODIC_CHECK_IN = "PERIODIC_CHECK_IN"


class PriorRelationship(str, Enum):
    """How well we knew the contact before outreach.

    Descriptive only. Passed through in cadence decisions, never branched on.
    """

    COLD = "COLD"
    WARM = "WARM"
    ESTABLISHED = "ESTABLISHED"
    DORMANT = "DORMANT"
    FRIEND_OF_FRIEND = "FRIEND_OF_FRIEND"


class PipelineName(str, Enum):
    """Relationship pipeline a contact sits in.

    Pipeline definitions are owned by pipeline management; this is the
    closed set of names the snapshot may carry.
    """

    UNASSIGNED = "unassigned"
    CONNECTOR = "connector"
    PROSPECT = "prospect"
    CLIENT = "client"
    COLLABORATOR = "collaborator"
    INSTITUTION = "institution"
    FRIEND = "friend"


class PipelineStage(str, Enum):
    """Stage within a pipeline."""

    NEED_TO_ENGAGE = "need-to-engage"
    INTEREST = "interest"
    MEETING = "meeting"
    PROPOSAL = "proposal"
    CONTRACT = "contract"
    KICKOFF = "kickoff"
    FORWARDED = "forwarded"
    INTRODUCTION_MADE = "introduction-made"


def _enum_or_none(enum_cls, value):
    """Coerce a raw value to enum_cls, mapping unknown/empty values to None."""
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


# =============================================================================
# TIMESTAMPS
# =============================================================================


def normalize_timestamp(value: datetime) -> datetime:
    """Return value as an aware UTC datetime.

    Naive datetimes are taken to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp for storage.

    Always UTC with microseconds, so stored text sorts in time order.
    """
    if value is None:
        return None
    return normalize_timestamp(value).isoformat(timespec="microseconds")


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a stored timestamp back to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return normalize_timestamp(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return normalize_timestamp(datetime.fromisoformat(text))


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# VALUE OBJECTS
# =============================================================================


@dataclass(frozen=True)
class PipelineSnapshot:
    """The contact's pipeline and stage as of the last snap.

    Written by pipeline management whenever it moves a contact. The cadence
    engine only reads it.

    Attributes:
        pipeline: Pipeline name, or None if unknown/unassigned
        stage: Stage name, or None
    """

    pipeline: Optional[PipelineName] = None
    stage: Optional[PipelineStage] = None

    @classmethod
    def from_raw(cls, pipeline: Optional[str], stage: Optional[str]) -> "PipelineSnapshot":
        """Build a snapshot from stored strings.

        Unknown values become None rather than raising, so a stage name this
        build does not know can never match a cadence rule by accident.
        """
        return cls(
            pipeline=_enum_or_none(PipelineName, pipeline),
            stage=_enum_or_none(PipelineStage, stage),
        )

    @property
    def is_connector_forwarded(self) -> bool:
        """True when a connector has forwarded the contact but no intro is made yet."""
        return self.pipeline == PipelineName.CONNECTOR and self.stage == PipelineStage.FORWARDED


@dataclass(frozen=True)
class SendHistory:
    """What the history reader knows about a contact's sends.

    Attributes:
        last_send_at: Most recent outbound send time, if any
        responded_at: Reply time matched to the most recent send, if any
    """

    last_send_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    @property
    def has_sends(self) -> bool:
        return self.last_send_at is not None

    @property
    def has_response(self) -> bool:
        return self.responded_at is not None


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass
class Contact:
    """Contact record with its engagement state.

    Attributes:
        id: Primary key
        first_name: First name
        last_name: Last name
        email: Primary email address
        do_not_contact_again: Terminal suppression flag, human-set only
        manual_reminder_date: Human "remind me on" calendar day (YYYY-MM-DD)
        manual_follow_up_date: Human "contact next on" calendar day (YYYY-MM-DD)
        manual_follow_up_note: Free-text note for the follow-up, never interpreted
        pipeline_snapshot: Pipeline/stage as of last snap
        prior_relationship: Descriptive relationship label
        last_contacted_at: Latest known outbound touch, only moves forward
        next_engagement_date: Engine output calendar day (YYYY-MM-DD)
        next_engagement_purpose: Engine output classification
        created_at: Record creation time
        updated_at: Last update time
    """

    id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    do_not_contact_again: bool = False
    manual_reminder_date: Optional[str] = None
    manual_follow_up_date: Optional[str] = None
    manual_follow_up_note: Optional[str] = None
    pipeline_snapshot: PipelineSnapshot = field(default_factory=PipelineSnapshot)
    prior_relationship: Optional[PriorRelationship] = None
    last_contacted_at: Optional[datetime] = None
    next_engagement_date: Optional[str] = None
    next_engagement_purpose: Optional[EngagementPurpose] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        """Return full name."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        """Full name, falling back to email."""
        return self.full_name or self.email or f"Contact #{self.id}"


@dataclass
class OutboundActivity:
    """Activity log entry. Append-only.

    Attributes:
        id: Primary key
        contact_id: Foreign key to contact
        event_kind: sent/received/opened/...
        channel_source: PLATFORM or OFF_PLATFORM
        sent_at: When the message was actually sent, if known
        created_at: When the row was logged
        matched_reply_id: Activity the reply matcher linked as the response
        subject: Email subject
        notes: Free-text notes
    """

    id: Optional[int] = None
    contact_id: int = 0
    event_kind: EventKind = EventKind.SENT
    channel_source: ChannelSource = ChannelSource.PLATFORM
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    matched_reply_id: Optional[int] = None
    subject: Optional[str] = None
    notes: Optional[str] = None
