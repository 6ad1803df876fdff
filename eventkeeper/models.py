# eventkeeper/models.py
"""
Event lifecycle and retention database models.

Tables:
- Event: Events with the lifecycle and retention fields the engine reads/writes
- EventRole: Additional organizers (notification recipients)
- WallPost: Event wall posts, swept by the wall retention window
- Notification: In-app notifications (retention warnings)
- EventLifecycleEvent: Immutable audit trail of retention actions
"""

from datetime import UTC, datetime
from enum import Enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from eventkeeper.constants import RetentionDefaults
from eventkeeper.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class RoleType(str, Enum):
    """Event roles that receive organizer notifications."""
    ORGANIZER = "ORGANIZER"


class LifecycleEventType(str, Enum):
    """Audit trail entry types for retention actions."""
    STATE_SYNCED = "state_synced"
    RETENTION_NOTIFIED = "retention_notified"
    ARCHIVED = "archived"
    DELETION_SCHEDULED = "deletion_scheduled"
    DELETION_CANCELLED = "deletion_cancelled"
    RETENTION_SETTINGS_UPDATED = "retention_settings_updated"
    WALL_POSTS_PURGED = "wall_posts_purged"
    HARD_DELETED = "hard_deleted"


# -----------------------------------------------------------------------------
# Event
# -----------------------------------------------------------------------------

class Event(Base):
    """
    Events, with the stored lifecycle state and retention bookkeeping.

    The stored state is the last explicitly persisted state. CLOSED and
    ONGOING are derived on read and never written; COMPLETED is written back
    by the retention job's sync step.
    """
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    creator_id = Column(Uuid, nullable=False)

    # Lifecycle
    state = Column(String(16), nullable=False, default="DRAFT")  # EventState value
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=True)  # None = default duration
    rsvp_deadline = Column(DateTime(timezone=True), nullable=True)

    # Retention settings
    data_retention_months = Column(
        Integer, nullable=False, default=RetentionDefaults.DATA_RETENTION_MONTHS
    )
    wall_retention_months = Column(Integer, nullable=True)  # None = keep wall posts

    # Retention bookkeeping
    retention_notification_sent = Column(Boolean, nullable=False, default=False)
    retention_notification_sent_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_for_deletion_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    roles = relationship("EventRole", back_populates="event", cascade="all, delete-orphan")
    wall_posts = relationship("WallPost", back_populates="event", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_events_state", "state"),
        Index("ix_events_archived_at", "archived_at"),
        Index("ix_events_scheduled_for_deletion_at", "scheduled_for_deletion_at"),
    )


# -----------------------------------------------------------------------------
# EventRole
# -----------------------------------------------------------------------------

class EventRole(Base):
    """Co-organizers of an event. The creator is an implicit organizer."""
    __tablename__ = "event_roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, nullable=False)
    role = Column(String(16), nullable=False, default=RoleType.ORGANIZER.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    event = relationship("Event", back_populates="roles")

    __table_args__ = (
        Index("ix_event_roles_event_id", "event_id"),
    )


# -----------------------------------------------------------------------------
# WallPost
# -----------------------------------------------------------------------------

class WallPost(Base):
    """Event wall posts. Only created_at matters for retention."""
    __tablename__ = "wall_posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Uuid, nullable=False)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    event = relationship("Event", back_populates="wall_posts")

    __table_args__ = (
        Index("ix_wall_posts_event_id_created_at", "event_id", "created_at"),
    )


# -----------------------------------------------------------------------------
# Notification
# -----------------------------------------------------------------------------

class Notification(Base):
    """In-app notifications shown to users."""
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(32), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_user_id", "user_id"),
        Index("ix_notifications_event_id", "event_id"),
    )


# -----------------------------------------------------------------------------
# EventLifecycleEvent
# -----------------------------------------------------------------------------

class EventLifecycleEvent(Base):
    """Immutable audit trail for retention actions."""
    __tablename__ = "event_lifecycle_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # No FK to events - entries persist after hard deletion
    event_id = Column(Uuid, nullable=False)
    event_type = Column(String(32), nullable=False)  # LifecycleEventType value
    event_timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    initiated_by = Column(String(32), nullable=False)
    idempotency_key = Column(String(128), nullable=True, unique=True)
    event_metadata = Column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_event_lifecycle_events_event_id", "event_id"),
        Index("ix_event_lifecycle_events_event_type", "event_type"),
    )
