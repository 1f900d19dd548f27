"""Core package - Configuration, logging, exceptions.

This package provides foundational infrastructure used by all other layers.

Modules:
    - config: Environment and configuration management
    - logging: Structured JSON logging
    - exceptions: Custom exception hierarchy
    - tasks: Thread pool and per-contact locks
"""

from touchline.core.exceptions import (
    ConfigurationError,
    ContactNotFoundError,
    DatabaseError,
    SchemaNotReadyError,
    TouchlineError,
    ValidationError,
)

__all__ = [
    "TouchlineError",
    "ConfigurationError",
    "ValidationError",
    "ContactNotFoundError",
    "DatabaseError",
    "SchemaNotReadyError",
]
