# eventkeeper/schemas/retention.py
"""
Schemas for event lifecycle and retention endpoints.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from eventkeeper.constants import RetentionDefaults, RetentionLimits

# -----------------------------------------------------------------------------
# Lifecycle state
# -----------------------------------------------------------------------------


class EventStateResponse(BaseModel):
    """Effective lifecycle state of an event."""

    event_id: uuid.UUID
    state: str = Field(..., description="Effective state derived from stored state and time")
    label: str
    stored_state: str
    can_accept_rsvps: bool
    can_be_cancelled: bool
    as_of: datetime


# -----------------------------------------------------------------------------
# Retention settings
# -----------------------------------------------------------------------------


class RetentionSettingsResponse(BaseModel):
    """Retention settings and status of an event."""

    event_id: uuid.UUID
    state: str
    data_retention_months: int
    wall_retention_months: int | None = None
    retention_notification_sent: bool
    retention_notification_sent_at: datetime | None = None
    archived_at: datetime | None = None
    scheduled_for_deletion_at: datetime | None = None

    # Computed, only for completed events
    archival_date: datetime | None = None
    notification_date: datetime | None = None


class RetentionSettingsUpdate(BaseModel):
    """
    Request to change retention settings.

    Omitted fields are left unchanged. wall_retention_months may be set to
    null to stop sweeping wall posts.
    """

    data_retention_months: int | None = Field(
        None,
        ge=RetentionLimits.DATA_RETENTION_MONTHS_MIN,
        le=RetentionLimits.DATA_RETENTION_MONTHS_MAX,
        description="Months to keep event data after the event ends",
    )
    wall_retention_months: int | None = Field(
        None,
        ge=RetentionLimits.WALL_RETENTION_MONTHS_MIN,
        le=RetentionLimits.WALL_RETENTION_MONTHS_MAX,
        description="Months to keep wall posts (null disables)",
    )


# -----------------------------------------------------------------------------
# Archive / deletion
# -----------------------------------------------------------------------------


class ArchiveEventResponse(BaseModel):
    """Manual archive result."""

    event_id: uuid.UUID
    archived_at: datetime


class ScheduleDeletionRequest(BaseModel):
    """Request to schedule permanent deletion."""

    grace_period_days: int = Field(
        RetentionDefaults.DELETION_GRACE_PERIOD_DAYS,
        ge=RetentionLimits.GRACE_PERIOD_DAYS_MIN,
        le=RetentionLimits.GRACE_PERIOD_DAYS_MAX,
        description="Days until the event is permanently deleted",
    )


class ScheduleDeletionResponse(BaseModel):
    """Scheduled deletion details."""

    event_id: uuid.UUID
    scheduled_for_deletion_at: datetime


class CancelDeletionResponse(BaseModel):
    """Cancelled deletion result."""

    event_id: uuid.UUID
    cancelled: bool = True
