"""Database package - SQLite database and models.

This package provides all database functionality:
    - database: Connection management, schema versions and operations
    - models: Dataclasses, value objects and enumerations
"""

from touchline.db.models import (
    ChannelSource,
    Contact,
    EngagementPurpose,
    EventKind,
    OutboundActivity,
    PipelineName,
    PipelineSnapshot,
    PipelineStage,
    PriorRelationship,
    SendHistory,
)

__all__ = [
    # Enums
    "EventKind",
    "ChannelSource",
    "EngagementPurpose",
    "PriorRelationship",
    "PipelineName",
    "PipelineStage",
    # Value objects
    "PipelineSnapshot",
    "SendHistory",
    # Dataclasses
    "Contact",
    "OutboundActivity",
]
