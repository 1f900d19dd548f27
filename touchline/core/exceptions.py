"""Touchline Exception Hierarchy.

All custom exceptions inherit from TouchlineError.
SchemaNotReadyError is its own class because a missing engine column
during a schema rollout is an expected outcome, not a storage failure
the caller should retry.

Exception Hierarchy:
    TouchlineError (base)
    ├── ConfigurationError
    ├── ValidationError
    ├── ContactNotFoundError
    └── DatabaseError
        └── SchemaNotReadyError
"""

from typing import Optional


class TouchlineError(Exception):
    """Base exception for all Touchline errors.

    All custom exceptions in Touchline inherit from this class,
    allowing for broad exception handling when needed.
    """

    pass


class ConfigurationError(TouchlineError):
    """Configuration is invalid or missing.

    Raised when:
        - Numeric environment variable is not a number
        - Configuration file is malformed
    """

    pass


class ValidationError(TouchlineError):
    """Data validation failed.

    Raised when:
        - A reminder or follow-up date cannot be parsed
        - A required field is missing
    """

    pass


class ContactNotFoundError(TouchlineError):
    """Cadence requested for a contact that does not exist.

    Fatal to the call. Never retried automatically.
    """

    def __init__(self, contact_id: int, message: Optional[str] = None):
        self.contact_id = contact_id
        super().__init__(message or f"Contact not found: {contact_id}")


class DatabaseError(TouchlineError):
    """Database operation failed.

    Raised when:
        - Database file cannot be opened
        - Database is locked
        - Query execution fails
        - Foreign key constraint violated

    Recompute is idempotent, so callers may retry on this error.
    """

    pass


class SchemaNotReadyError(DatabaseError):
    """Engine output columns do not exist yet.

    Raised by the storage layer during a schema rollout window, when the
    database still runs a schema version that predates the
    next_engagement_* columns. The persistence adapter converts it to a
    non-error result; read paths over the engine columns treat it as
    "nothing computed yet".
    """

    def __init__(self, column: str, message: Optional[str] = None):
        self.column = column
        super().__init__(message or f"Schema not ready: missing column {column}")
