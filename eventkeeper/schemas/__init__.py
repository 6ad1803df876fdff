# eventkeeper/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.
"""

from eventkeeper.schemas.retention import (
    ArchiveEventResponse,
    CancelDeletionResponse,
    EventStateResponse,
    RetentionSettingsResponse,
    RetentionSettingsUpdate,
    ScheduleDeletionRequest,
    ScheduleDeletionResponse,
)

__all__ = [
    "EventStateResponse",
    "RetentionSettingsResponse",
    "RetentionSettingsUpdate",
    "ArchiveEventResponse",
    "ScheduleDeletionRequest",
    "ScheduleDeletionResponse",
    "CancelDeletionResponse",
]
