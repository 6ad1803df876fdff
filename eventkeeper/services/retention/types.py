# eventkeeper/services/retention/types.py
"""
Shared types for the lifecycle and retention engine.

Snapshots are read-only projections of stored rows. The engine only reads
them and returns decisions; applying decisions is the executor's job.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from eventkeeper.constants import RetentionDefaults


class EventState(str, Enum):
    """Event lifecycle states."""
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CLOSED = "CLOSED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# States that never advance with time
TERMINAL_STATES = frozenset({EventState.DRAFT, EventState.CANCELLED})

# Order in which time moves a published event forward
PROGRESSION_ORDER = (
    EventState.PUBLISHED,
    EventState.CLOSED,
    EventState.ONGOING,
    EventState.COMPLETED,
)


@dataclass(frozen=True)
class EventSnapshot:
    """Projection of an event row with the fields lifecycle logic reads."""

    id: uuid.UUID
    stored_state: EventState
    start_at: datetime
    created_at: datetime
    end_at: datetime | None = None
    rsvp_deadline: datetime | None = None
    data_retention_months: int = RetentionDefaults.DATA_RETENTION_MONTHS
    wall_retention_months: int | None = None
    retention_notification_sent: bool = False
    retention_notification_sent_at: datetime | None = None
    archived_at: datetime | None = None
    scheduled_for_deletion_at: datetime | None = None


@dataclass(frozen=True)
class WallPostSnapshot:
    """Projection of a wall post row."""

    id: uuid.UUID
    event_id: uuid.UUID
    created_at: datetime


@dataclass
class PlannerOutput:
    """Event ids selected for each retention command in one planning pass."""

    to_notify: list[uuid.UUID] = field(default_factory=list)
    to_archive: list[uuid.UUID] = field(default_factory=list)
    to_delete: list[uuid.UUID] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_notify or self.to_archive or self.to_delete)

    def counts(self) -> dict[str, int]:
        return {
            "to_notify": len(self.to_notify),
            "to_archive": len(self.to_archive),
            "to_delete": len(self.to_delete),
        }
