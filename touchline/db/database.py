"""SQLite database connection and operations for Touchline.

Provides:
    - Connection management with WAL mode
    - Versioned schema creation and migration
    - Contact and outbound activity operations
    - The engine's guarded writes (monotonic touch, next engagement)

Usage:
    from touchline.db.database import Database

    db = Database()
    db.initialize()

    contact_id = db.create_contact(Contact(first_name="Ada", last_name="Byron"))
"""

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from touchline.core.config import get_config
from touchline.core.exceptions import DatabaseError, SchemaNotReadyError
from touchline.core.logging import get_logger
from touchline.db.models import (
    ChannelSource,
    Contact,
    EngagementPurpose,
    EventKind,
    OutboundActivity,
    PipelineSnapshot,
    PriorRelationship,
    format_timestamp,
    parse_timestamp,
    utcnow,
)

logger = get_logger(__name__)


# Schema version for migrations
SCHEMA_VERSION = 2

# Columns added by version 2. Until a database is migrated, writes to them
# fail with "no such column".
ENGAGEMENT_COLUMNS = (
    "next_engagement_date",
    "next_engagement_purpose",
    "next_engagement_computed_at",
)

_BASE_SCHEMA_DDL = """
-- Contacts
CREATE TABLE IF NOT EXISTS contacts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    email TEXT,
    do_not_contact_again BOOLEAN NOT NULL DEFAULT 0,
    manual_reminder_date TEXT,
    manual_follow_up_date TEXT,
    manual_follow_up_note TEXT,
    pipeline_snap TEXT,
    pipeline_stage_snap TEXT,
    prior_relationship TEXT,
    last_contacted_at TEXT,
    inputs_changed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_contacts_email ON contacts(email);
CREATE INDEX IF NOT EXISTS idx_contacts_dnc ON contacts(do_not_contact_again);

-- Outbound activities (append-only)
CREATE TABLE IF NOT EXISTS outbound_activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    contact_id INTEGER NOT NULL,
    event_kind TEXT NOT NULL,
    channel_source TEXT NOT NULL DEFAULT 'PLATFORM',
    sent_at TEXT,
    created_at TEXT NOT NULL,
    matched_reply_id INTEGER,
    subject TEXT,
    notes TEXT,
    FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE,
    FOREIGN KEY (matched_reply_id) REFERENCES outbound_activities(id)
);

CREATE INDEX IF NOT EXISTS idx_activities_contact ON outbound_activities(contact_id, created_at);
CREATE INDEX IF NOT EXISTS idx_activities_kind ON outbound_activities(event_kind);

-- Schema Version
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

INSERT OR IGNORE INTO schema_version (version) VALUES (1);
"""

# version -> DDL that upgrades from version - 1
_MIGRATIONS: dict[int, str] = {
    2: """
    ALTER TABLE contacts ADD COLUMN next_engagement_date TEXT;
    ALTER TABLE contacts ADD COLUMN next_engagement_purpose TEXT;
    ALTER TABLE contacts ADD COLUMN next_engagement_computed_at TEXT;
    CREATE INDEX IF NOT EXISTS idx_contacts_next_engagement ON contacts(next_engagement_date);
    INSERT OR IGNORE INTO schema_version (version) VALUES (2);
    """,
}

_SEND_FILTER = "(event_kind = ? OR channel_source = ?)"
_SEND_PARAMS = (EventKind.SENT.value, ChannelSource.OFF_PLATFORM.value)


def _is_missing_column_error(error: sqlite3.Error) -> Optional[str]:
    """Return the missing engine column named by error, if that is what it is."""
    message = str(error).lower()
    if "no such column" not in message and "has no column named" not in message:
        return None
    for column in ENGAGEMENT_COLUMNS:
        if column in message:
            return column
    return None


class Database:
    """SQLite database manager.

    One connection is shared by every thread using this instance; a
    re-entrant lock serializes statement execution on it.

    Attributes:
        db_path: Path to database file
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database.

        Args:
            db_path: Path to database file. Use ":memory:" for in-memory.
                    Defaults to config path.
        """
        if db_path is None:
            config = get_config()
            self.db_path = str(config.db_path)
        else:
            self.db_path = db_path

        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

                self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
                self._conn.row_factory = sqlite3.Row

                self._conn.execute("PRAGMA foreign_keys = ON")

                if self.db_path != ":memory:":
                    self._conn.execute("PRAGMA journal_mode = WAL")

            except sqlite3.Error as e:
                raise DatabaseError(f"Cannot connect to database: {e}") from e

        return self._conn

    @staticmethod
    def _lastrowid(cursor: sqlite3.Cursor) -> int:
        """Extract lastrowid from cursor (always set after INSERT in SQLite)."""
        row_id = cursor.lastrowid
        assert row_id is not None, "lastrowid was None after INSERT"
        return row_id

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # =========================================================================
    # SCHEMA
    # =========================================================================

    def initialize(self, target_version: int = SCHEMA_VERSION) -> None:
        """Create schema if not exists and migrate up to target_version.

        Args:
            target_version: Highest schema version to apply. Passing 1 leaves
                the database in the pre-rollout state, without the engine's
                output columns.
        """
        if not 1 <= target_version <= SCHEMA_VERSION:
            raise DatabaseError(f"Unknown schema version: {target_version}")

        with self._lock:
            conn = self._get_connection()
            try:
                conn.executescript(_BASE_SCHEMA_DDL)
                conn.commit()
            except sqlite3.Error as e:
                raise DatabaseError(f"Cannot initialize database: {e}") from e

        self.migrate(target_version)
        logger.info(
            "Database initialized",
            extra={"context": {"path": self.db_path, "schema_version": self.get_schema_version()}},
        )

    def get_schema_version(self) -> int:
        """Return the highest applied schema version (0 if uninitialized)."""
        with self._lock:
            conn = self._get_connection()
            try:
                row = conn.execute("SELECT MAX(version) AS v FROM schema_version").fetchone()
            except sqlite3.OperationalError:
                return 0
            return int(row["v"] or 0)

    def migrate(self, target_version: int = SCHEMA_VERSION) -> int:
        """Apply pending migrations up to target_version.

        Returns:
            Number of migrations applied
        """
        applied = 0
        with self._lock:
            conn = self._get_connection()
            current = self.get_schema_version()
            for version in range(current + 1, target_version + 1):
                try:
                    conn.executescript(_MIGRATIONS[version])
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    raise DatabaseError(f"Migration to version {version} failed: {e}") from e
                applied += 1
                logger.info("Schema migrated", extra={"context": {"version": version}})
        return applied

    # =========================================================================
    # ROW-TO-MODEL HELPERS
    # =========================================================================

    def _row_to_contact(self, row: sqlite3.Row) -> Contact:
        """Convert a database row to a Contact dataclass.

        Tolerates rows from a schema that predates the engine columns.
        """
        keys = row.keys()

        rel_val = row["prior_relationship"]
        prior_relationship = PriorRelationship(rel_val) if rel_val else None

        next_date = row["next_engagement_date"] if "next_engagement_date" in keys else None
        purpose_val = row["next_engagement_purpose"] if "next_engagement_purpose" in keys else None
        purpose = EngagementPurpose(purpose_val) if purpose_val else None

        return Contact(
            id=row["id"],
            first_name=row["first_name"] or "",
            last_name=row["last_name"] or "",
            email=row["email"],
            do_not_contact_again=bool(row["do_not_contact_again"]),
            manual_reminder_date=row["manual_reminder_date"],
            manual_follow_up_date=row["manual_follow_up_date"],
            manual_follow_up_note=row["manual_follow_up_note"],
            pipeline_snapshot=PipelineSnapshot.from_raw(
                row["pipeline_snap"], row["pipeline_stage_snap"]
            ),
            prior_relationship=prior_relationship,
            last_contacted_at=parse_timestamp(row["last_contacted_at"]),
            next_engagement_date=next_date,
            next_engagement_purpose=purpose,
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    def _row_to_activity(self, row: sqlite3.Row) -> OutboundActivity:
        """Convert a database row to an OutboundActivity dataclass."""
        return OutboundActivity(
            id=row["id"],
            contact_id=row["contact_id"],
            event_kind=EventKind(row["event_kind"]),
            channel_source=ChannelSource(row["channel_source"] or ChannelSource.PLATFORM.value),
            sent_at=parse_timestamp(row["sent_at"]),
            created_at=parse_timestamp(row["created_at"]),
            matched_reply_id=row["matched_reply_id"],
            subject=row["subject"],
            notes=row["notes"],
        )

    # =========================================================================
    # CONTACT OPERATIONS
    # =========================================================================

    def create_contact(self, contact: Contact) -> int:
        """Create a contact record.

        The engine's output fields always start empty, whatever the
        dataclass carries.

        Returns:
            New contact ID
        """
        now = format_timestamp(utcnow())
        snapshot = contact.pipeline_snapshot or PipelineSnapshot()
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    """INSERT INTO contacts
                       (first_name, last_name, email, do_not_contact_again,
                        manual_reminder_date, manual_follow_up_date, manual_follow_up_note,
                        pipeline_snap, pipeline_stage_snap, prior_relationship,
                        last_contacted_at, inputs_changed_at, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        contact.first_name,
                        contact.last_name,
                        contact.email,
                        1 if contact.do_not_contact_again else 0,
                        contact.manual_reminder_date,
                        contact.manual_follow_up_date,
                        contact.manual_follow_up_note,
                        snapshot.pipeline.value if snapshot.pipeline else None,
                        snapshot.stage.value if snapshot.stage else None,
                        contact.prior_relationship.value if contact.prior_relationship else None,
                        format_timestamp(contact.last_contacted_at),
                        now,
                        now,
                        now,
                    ),
                )
                conn.commit()
                contact_id = self._lastrowid(cursor)
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to create contact: {e}") from e

        logger.info(
            "Contact created",
            extra={"context": {"contact_id": contact_id, "name": contact.full_name}},
        )
        return contact_id

    def get_contact(self, contact_id: int) -> Optional[Contact]:
        """Get contact by ID."""
        with self._lock:
            conn = self._get_connection()
            try:
                row = conn.execute("SELECT * FROM contacts WHERE id = ?", (contact_id,)).fetchone()
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to read contact {contact_id}: {e}") from e
        if row is None:
            return None
        return self._row_to_contact(row)

    def update_contact(self, contact: Contact) -> bool:
        """Update the human-owned fields of a contact.

        Writes every field back from the dataclass, so it suits whole-record
        edits. Single-field changes that race with other writers should go
        through the targeted setters below. Does not touch the pipeline
        snapshot, last_contacted_at or the engine's output; those have
        their own writers.

        Returns:
            True if updated
        """
        if contact.id is None:
            return False
        now = format_timestamp(utcnow())
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    """UPDATE contacts SET
                       first_name = ?, last_name = ?, email = ?,
                       do_not_contact_again = ?,
                       manual_reminder_date = ?, manual_follow_up_date = ?,
                       manual_follow_up_note = ?, prior_relationship = ?,
                       inputs_changed_at = ?, updated_at = ?
                       WHERE id = ?""",
                    (
                        contact.first_name,
                        contact.last_name,
                        contact.email,
                        1 if contact.do_not_contact_again else 0,
                        contact.manual_reminder_date,
                        contact.manual_follow_up_date,
                        contact.manual_follow_up_note,
                        contact.prior_relationship.value if contact.prior_relationship else None,
                        now,
                        now,
                        contact.id,
                    ),
                )
                conn.commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to update contact: {e}") from e

    def _set_contact_inputs(self, contact_id: int, values: dict[str, Any], what: str) -> bool:
        """UPDATE only the named human-owned columns, stamping inputs_changed_at."""
        now = format_timestamp(utcnow())
        assignments = ", ".join(f"{column} = ?" for column in values)
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    f"""UPDATE contacts SET {assignments},
                        inputs_changed_at = ?, updated_at = ?
                        WHERE id = ?""",
                    (*values.values(), now, now, contact_id),
                )
                conn.commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to update {what}: {e}") from e

    def set_manual_reminder(self, contact_id: int, day: Optional[str]) -> bool:
        """Set or clear (None) the "remind me on" day.

        Returns:
            True if the contact exists and was updated
        """
        return self._set_contact_inputs(contact_id, {"manual_reminder_date": day}, "reminder")

    def set_manual_follow_up(
        self, contact_id: int, day: Optional[str], note: Optional[str]
    ) -> bool:
        """Set or clear the "contact next on" day together with its note.

        Returns:
            True if the contact exists and was updated
        """
        return self._set_contact_inputs(
            contact_id,
            {"manual_follow_up_date": day, "manual_follow_up_note": note},
            "follow-up",
        )

    def set_do_not_contact(self, contact_id: int, flag: bool) -> bool:
        """Turn the do-not-contact flag on or off.

        Turning it on drops the pending follow-up day and note in the same
        statement.

        Returns:
            True if the contact exists and was updated
        """
        values: dict[str, Any] = {"do_not_contact_again": 1 if flag else 0}
        if flag:
            values["manual_follow_up_date"] = None
            values["manual_follow_up_note"] = None
        return self._set_contact_inputs(contact_id, values, "do-not-contact")

    def list_contact_ids(self, include_suppressed: bool = True) -> list[int]:
        """Return all contact IDs in ascending order."""
        query = "SELECT id FROM contacts"
        if not include_suppressed:
            query += " WHERE do_not_contact_again = 0"
        query += " ORDER BY id ASC"
        with self._lock:
            rows = self._get_connection().execute(query).fetchall()
        return [row["id"] for row in rows]

    def update_pipeline_snapshot(self, contact_id: int, snapshot: PipelineSnapshot) -> bool:
        """Snap pipeline and stage onto the contact.

        Called by pipeline management whenever it moves a contact.

        Returns:
            True if the contact exists and was updated
        """
        now = format_timestamp(utcnow())
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    """UPDATE contacts SET
                       pipeline_snap = ?, pipeline_stage_snap = ?,
                       inputs_changed_at = ?, updated_at = ?
                       WHERE id = ?""",
                    (
                        snapshot.pipeline.value if snapshot.pipeline else None,
                        snapshot.stage.value if snapshot.stage else None,
                        now,
                        now,
                        contact_id,
                    ),
                )
                conn.commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to update pipeline snapshot: {e}") from e

    def advance_last_contacted_at(self, contact_id: int, touched_at: datetime) -> bool:
        """Move last_contacted_at forward to touched_at.

        The comparison happens inside the UPDATE, so concurrent callers can
        never move the marker backward regardless of ordering.

        Returns:
            True if the stored value changed
        """
        stamp = format_timestamp(touched_at)
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    """UPDATE contacts SET last_contacted_at = ?, updated_at = ?
                       WHERE id = ?
                       AND (last_contacted_at IS NULL OR last_contacted_at < ?)""",
                    (stamp, format_timestamp(utcnow()), contact_id, stamp),
                )
                conn.commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to advance last_contacted_at: {e}") from e

    def write_next_engagement(
        self,
        contact_id: int,
        next_date: Optional[str],
        purpose: Optional[EngagementPurpose],
    ) -> bool:
        """Store the engine's output on the contact.

        Args:
            contact_id: Contact to update
            next_date: Calendar day (YYYY-MM-DD), or None to clear
            purpose: Classification, or None

        Returns:
            True if the contact exists and was updated

        Raises:
            SchemaNotReadyError: The engine columns do not exist yet
            DatabaseError: Any other storage failure
        """
        now = format_timestamp(utcnow())
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    """UPDATE contacts SET
                       next_engagement_date = ?, next_engagement_purpose = ?,
                       next_engagement_computed_at = ?, updated_at = ?
                       WHERE id = ?""",
                    (next_date, purpose.value if purpose else None, now, now, contact_id),
                )
                conn.commit()
                return cursor.rowcount > 0
            except sqlite3.OperationalError as e:
                conn.rollback()
                column = _is_missing_column_error(e)
                if column is not None:
                    raise SchemaNotReadyError(column) from e
                raise DatabaseError(f"Failed to write next engagement: {e}") from e
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to write next engagement: {e}") from e

    def get_contacts_with_next_engagement(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        include_suppressed: bool = False,
        limit: int = 500,
    ) -> list[Contact]:
        """Get contacts that have a stored next engagement date.

        Args:
            date_from: Inclusive lower bound (YYYY-MM-DD)
            date_to: Inclusive upper bound (YYYY-MM-DD)
            include_suppressed: Include do-not-contact contacts
            limit: Maximum rows

        Returns:
            Contacts ordered by next engagement date, then name

        Raises:
            SchemaNotReadyError: The engine columns do not exist yet
        """
        conditions = ["next_engagement_date IS NOT NULL"]
        params: list[Any] = []
        if date_from is not None:
            conditions.append("next_engagement_date >= ?")
            params.append(date_from)
        if date_to is not None:
            conditions.append("next_engagement_date <= ?")
            params.append(date_to)
        if not include_suppressed:
            conditions.append("do_not_contact_again = 0")

        query = f"""
            SELECT * FROM contacts
            WHERE {" AND ".join(conditions)}
            ORDER BY next_engagement_date ASC, first_name ASC, last_name ASC, id ASC
            LIMIT ?
        """
        params.append(limit)

        with self._lock:
            try:
                rows = self._get_connection().execute(query, params).fetchall()
            except sqlite3.OperationalError as e:
                column = _is_missing_column_error(e)
                if column is not None:
                    raise SchemaNotReadyError(column) from e
                raise DatabaseError(f"Failed to query next engagements: {e}") from e
        return [self._row_to_contact(row) for row in rows]

    def get_stale_contact_ids(self) -> list[int]:
        """Contacts whose stored next engagement may lag their activity.

        Stale means never computed, or an activity row, a touch or any other
        input change (human fields, pipeline snapshot, reply match) newer
        than the last computation.

        Raises:
            SchemaNotReadyError: The engine columns do not exist yet
        """
        query = """
            SELECT c.id FROM contacts c
            WHERE c.next_engagement_computed_at IS NULL
               OR (c.last_contacted_at IS NOT NULL
                   AND c.last_contacted_at > c.next_engagement_computed_at)
               OR (c.inputs_changed_at IS NOT NULL
                   AND c.inputs_changed_at > c.next_engagement_computed_at)
               OR EXISTS (
                   SELECT 1 FROM outbound_activities a
                   WHERE a.contact_id = c.id
                   AND a.created_at > c.next_engagement_computed_at
               )
            ORDER BY c.id ASC
        """
        with self._lock:
            try:
                rows = self._get_connection().execute(query).fetchall()
            except sqlite3.OperationalError as e:
                column = _is_missing_column_error(e)
                if column is not None:
                    raise SchemaNotReadyError(column) from e
                raise DatabaseError(f"Failed to query stale contacts: {e}") from e
        return [row["id"] for row in rows]

    # =========================================================================
    # ACTIVITY OPERATIONS
    # =========================================================================

    def create_activity(self, activity: OutboundActivity) -> int:
        """Append an activity. created_at defaults to now."""
        created_at = activity.created_at or utcnow()
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    """INSERT INTO outbound_activities
                       (contact_id, event_kind, channel_source, sent_at, created_at,
                        matched_reply_id, subject, notes)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        activity.contact_id,
                        EventKind(activity.event_kind).value,
                        ChannelSource(activity.channel_source).value,
                        format_timestamp(activity.sent_at),
                        format_timestamp(created_at),
                        activity.matched_reply_id,
                        activity.subject,
                        activity.notes,
                    ),
                )
                conn.commit()
                return self._lastrowid(cursor)
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to create activity: {e}") from e

    def get_activity(self, activity_id: int) -> Optional[OutboundActivity]:
        """Get activity by ID."""
        with self._lock:
            row = (
                self._get_connection()
                .execute("SELECT * FROM outbound_activities WHERE id = ?", (activity_id,))
                .fetchone()
            )
        if row is None:
            return None
        return self._row_to_activity(row)

    def get_activities(self, contact_id: int, limit: int = 50) -> list[OutboundActivity]:
        """Get activities for contact, most recent first."""
        with self._lock:
            rows = (
                self._get_connection()
                .execute(
                    """SELECT * FROM outbound_activities WHERE contact_id = ?
                       ORDER BY created_at DESC, id DESC LIMIT ?""",
                    (contact_id, limit),
                )
                .fetchall()
            )
        return [self._row_to_activity(row) for row in rows]

    def get_send_activities(self, contact_id: int, limit: int = 50) -> list[OutboundActivity]:
        """Get the most recent send rows for a contact, newest first.

        A send is an activity whose event kind is sent, or any activity
        logged off-platform.
        """
        with self._lock:
            try:
                rows = (
                    self._get_connection()
                    .execute(
                        f"""SELECT * FROM outbound_activities
                            WHERE contact_id = ? AND {_SEND_FILTER}
                            ORDER BY created_at DESC, id DESC LIMIT ?""",
                        (contact_id, *_SEND_PARAMS, limit),
                    )
                    .fetchall()
                )
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to read send history: {e}") from e
        return [self._row_to_activity(row) for row in rows]

    def set_matched_reply(self, send_activity_id: int, reply_activity_id: int) -> bool:
        """Record the reply matcher's result on a send row.

        The send's contact is marked as having changed inputs in the same
        transaction.

        Returns:
            True if the send row exists and was updated
        """
        now = format_timestamp(utcnow())
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    "UPDATE outbound_activities SET matched_reply_id = ? WHERE id = ?",
                    (reply_activity_id, send_activity_id),
                )
                matched = cursor.rowcount > 0
                if matched:
                    conn.execute(
                        """UPDATE contacts SET inputs_changed_at = ?, updated_at = ?
                           WHERE id = (SELECT contact_id FROM outbound_activities
                                       WHERE id = ?)""",
                        (now, now, send_activity_id),
                    )
                conn.commit()
                return matched
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(f"Failed to record matched reply: {e}") from e
