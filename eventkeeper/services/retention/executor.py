# eventkeeper/services/retention/executor.py
"""
Retention executor: applies engine decisions to storage.

Every write is conditional on the flag it changes (compare-and-set), so
applying the same decision twice is a no-op. This is what makes the
retention job safe to retry after a crash and safe to run from more than one
scheduler instance without a lock.

Handles:
- Persisting COMPLETED from the sync step
- Marking retention notifications sent and notifying organizers
- Archiving (set archived_at if null)
- Scheduling / cancelling deletion and permanently deleting events
- Purging expired wall posts
- Updating retention settings (resets the notification flag)
- Logging lifecycle events for audit trail
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from eventkeeper.constants import Initiators, NotificationTypes, RetentionDefaults, RetentionLimits
from eventkeeper.models import (
    Event,
    EventLifecycleEvent,
    EventRole,
    LifecycleEventType,
    Notification,
    WallPost,
)
from eventkeeper.services.retention.calculator import deletion_date
from eventkeeper.services.retention.clock import Clock, SystemClock
from eventkeeper.services.retention.errors import EventNotFoundError, RetentionActionError
from eventkeeper.services.retention.repository import as_utc, get_event, get_event_snapshot, organizer_ids
from eventkeeper.services.retention.state_resolver import resolve_state
from eventkeeper.services.retention.types import EventState

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks a settings field the caller did not provide (None is a real value
# for wall_retention_months: "never sweep")
UNSET = _Unset()


def _check_months(label: str, months, minimum: int, maximum: int) -> None:
    if not isinstance(months, int) or isinstance(months, bool) or not minimum <= months <= maximum:
        raise RetentionActionError(f"{label} must be between {minimum} and {maximum} months")


def retention_warning_message(title: str) -> str:
    return (
        f'Event "{title}" will be archived in {RetentionDefaults.NOTIFICATION_DAYS_BEFORE_ARCHIVAL} days '
        "due to data retention policy. You can change retention settings in event settings."
    )


class RetentionExecutor:
    """
    SQLAlchemy-backed executor for retention commands.

    Each public command commits its own transaction. Callers running batches
    should roll back the session when a command raises.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock | None = None,
        initiated_by: str = Initiators.SCHEDULER,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.initiated_by = initiated_by

    # -------------------------------------------------------------------------
    # Audit trail
    # -------------------------------------------------------------------------

    def _log_lifecycle_event(
        self,
        event_id: uuid.UUID,
        event_type: LifecycleEventType,
        idempotency_key: str | None = None,
        event_metadata: dict | None = None,
    ) -> EventLifecycleEvent:
        """
        Log a lifecycle event for audit trail.

        Uses idempotency_key to prevent duplicate events.
        """
        if idempotency_key:
            existing = (
                self.db.query(EventLifecycleEvent)
                .filter(EventLifecycleEvent.idempotency_key == idempotency_key)
                .first()
            )
            if existing:
                return existing

        entry = EventLifecycleEvent(
            event_id=event_id,
            event_type=event_type.value,
            event_timestamp=self.clock.now(),
            initiated_by=self.initiated_by,
            idempotency_key=idempotency_key,
            event_metadata=event_metadata,
        )
        self.db.add(entry)
        return entry

    def _ensure_exists(self, event_id: uuid.UUID) -> None:
        if self.db.query(Event.id).filter(Event.id == event_id).first() is None:
            raise EventNotFoundError(event_id)

    # -------------------------------------------------------------------------
    # Scheduler commands
    # -------------------------------------------------------------------------

    def sync_state(self, event_id: uuid.UUID, state: EventState, at: datetime) -> bool:
        """
        Persist a derived state (only COMPLETED in practice).

        Terminal states are never overwritten, so a cancellation that landed
        after planning wins.
        """
        updated = (
            self.db.query(Event)
            .filter(
                Event.id == event_id,
                Event.state.notin_(
                    [state.value, EventState.DRAFT.value, EventState.CANCELLED.value]
                ),
            )
            .update({"state": state.value, "updated_at": at}, synchronize_session=False)
        )
        if not updated:
            self._ensure_exists(event_id)
            return False

        self._log_lifecycle_event(
            event_id,
            LifecycleEventType.STATE_SYNCED,
            idempotency_key=f"state_synced:{event_id}:{state.value}",
            event_metadata={"state": state.value},
        )
        self.db.commit()
        logger.debug(f"Stored state {state.value} for event {event_id}")
        return True

    def _claim_notification(self, event_id: uuid.UUID, at: datetime) -> bool:
        updated = (
            self.db.query(Event)
            .filter(Event.id == event_id, Event.retention_notification_sent.is_(False))
            .update(
                {
                    "retention_notification_sent": True,
                    "retention_notification_sent_at": at,
                    "updated_at": at,
                },
                synchronize_session=False,
            )
        )
        if not updated:
            self._ensure_exists(event_id)
            return False

        self._log_lifecycle_event(
            event_id,
            LifecycleEventType.RETENTION_NOTIFIED,
            idempotency_key=f"retention_notified:{event_id}:{at.isoformat()}",
        )
        return True

    def mark_notified(self, event_id: uuid.UUID, at: datetime) -> bool:
        """Set the notification flag if it is still unset. Returns True if this call set it."""
        claimed = self._claim_notification(event_id, at)
        if claimed:
            self.db.commit()
        return claimed

    def notify_organizers(self, event_id: uuid.UUID, at: datetime) -> int:
        """
        Warn every organizer about upcoming archival.

        The flag is claimed and the notifications are inserted in one
        transaction, so a failure leaves the event eligible for the next run
        and a repeat never sends twice. Returns the number of notifications
        created (0 when already notified).
        """
        if not self._claim_notification(event_id, at):
            return 0

        event = get_event(self.db, event_id)
        recipients = organizer_ids(event)
        message = retention_warning_message(event.title)
        for user_id in recipients:
            self.db.add(
                Notification(
                    user_id=user_id,
                    event_id=event_id,
                    type=NotificationTypes.RETENTION_WARNING,
                    message=message,
                    created_at=at,
                )
            )

        self.db.commit()
        logger.info(
            f"Sent retention warning for event {event_id} to {len(recipients)} organizers",
            extra={"event": "retention_notified", "event_id": str(event_id)},
        )
        return len(recipients)

    def archive(self, event_id: uuid.UUID, at: datetime) -> bool:
        """Set archived_at if it is still null. Returns True if this call archived."""
        updated = (
            self.db.query(Event)
            .filter(Event.id == event_id, Event.archived_at.is_(None))
            .update({"archived_at": at, "updated_at": at}, synchronize_session=False)
        )
        if not updated:
            self._ensure_exists(event_id)
            return False

        self._log_lifecycle_event(
            event_id,
            LifecycleEventType.ARCHIVED,
            idempotency_key=f"archived:{event_id}:{at.isoformat()}",
        )
        self.db.commit()
        logger.info(
            f"Archived event {event_id}",
            extra={"event": "event_archived", "event_id": str(event_id)},
        )
        return True

    def delete_wall_posts(self, event_id: uuid.UUID, post_ids: list[uuid.UUID]) -> int:
        """Delete the given wall posts of an event. Already-deleted ids are ignored."""
        if not post_ids:
            return 0

        deleted = (
            self.db.query(WallPost)
            .filter(WallPost.event_id == event_id, WallPost.id.in_(post_ids))
            .delete(synchronize_session=False)
        )
        if deleted:
            self._log_lifecycle_event(
                event_id,
                LifecycleEventType.WALL_POSTS_PURGED,
                event_metadata={"deleted": deleted},
            )
        self.db.commit()
        return deleted

    def permanently_delete(self, event_id: uuid.UUID, now: datetime) -> dict | None:
        """
        Hard delete an event whose scheduled deletion is due, with all related rows.

        Follows cascade-safe deletion order (leaf-to-root):
        1. Notification, WallPost, EventRole
        2. Event (root)

        Returns counts of deleted records by table, or None when the event is
        gone, no longer scheduled, or not yet due.
        """
        event = self.db.query(Event).filter(Event.id == event_id).first()
        if event is None:
            return None

        scheduled_at = as_utc(event.scheduled_for_deletion_at)
        if scheduled_at is None or now < scheduled_at:
            return None

        # Bulk deletes below bypass the identity map
        self.db.expunge(event)

        counts = {}
        counts["notifications"] = (
            self.db.query(Notification)
            .filter(Notification.event_id == event_id)
            .delete(synchronize_session=False)
        )
        counts["wall_posts"] = (
            self.db.query(WallPost)
            .filter(WallPost.event_id == event_id)
            .delete(synchronize_session=False)
        )
        counts["event_roles"] = (
            self.db.query(EventRole)
            .filter(EventRole.event_id == event_id)
            .delete(synchronize_session=False)
        )

        # Log before deleting the root
        self._log_lifecycle_event(
            event_id,
            LifecycleEventType.HARD_DELETED,
            idempotency_key=f"hard_deleted:{event_id}",
            event_metadata={"deleted_counts": counts, "scheduled_for": scheduled_at.isoformat()},
        )

        # Still scheduled and due at delete time, or a concurrent cancel or reschedule wins
        deleted = (
            self.db.query(Event)
            .filter(
                Event.id == event_id,
                Event.scheduled_for_deletion_at.isnot(None),
                Event.scheduled_for_deletion_at <= now,
            )
            .delete(synchronize_session=False)
        )
        if not deleted:
            self.db.rollback()
            return None

        counts["events"] = deleted
        self.db.commit()
        logger.info(
            f"Permanently deleted event {event_id}",
            extra={"event": "event_hard_deleted", "event_id": str(event_id)},
        )
        return counts

    # -------------------------------------------------------------------------
    # Organizer commands
    # -------------------------------------------------------------------------

    def archive_event(self, event_id: uuid.UUID) -> datetime:
        """
        Archive an event on request, ahead of its retention date.

        Only completed events that are not archived yet can be archived. An
        event that has effectively completed but is not stored as such is
        synced first.
        """
        now = self.clock.now()
        event = get_event_snapshot(self.db, event_id)

        if event.archived_at is not None:
            raise RetentionActionError("Event is already archived")
        if resolve_state(event, now) != EventState.COMPLETED:
            raise RetentionActionError("Only completed events can be archived")

        if event.stored_state != EventState.COMPLETED:
            self.sync_state(event_id, EventState.COMPLETED, now)
        if not self.archive(event_id, now):
            raise RetentionActionError("Event is already archived")
        return now

    def schedule_deletion_after(
        self,
        event_id: uuid.UUID,
        grace_period_days: int = RetentionDefaults.DELETION_GRACE_PERIOD_DAYS,
    ) -> datetime:
        """Schedule deletion grace_period_days from now."""
        if not (
            RetentionLimits.GRACE_PERIOD_DAYS_MIN
            <= grace_period_days
            <= RetentionLimits.GRACE_PERIOD_DAYS_MAX
        ):
            raise RetentionActionError(
                f"Grace period must be between {RetentionLimits.GRACE_PERIOD_DAYS_MIN} "
                f"and {RetentionLimits.GRACE_PERIOD_DAYS_MAX} days"
            )
        return self.schedule_deletion(event_id, deletion_date(self.clock.now(), grace_period_days))

    def schedule_deletion(self, event_id: uuid.UUID, at: datetime) -> datetime:
        """Schedule (or reschedule) hard deletion at the given instant."""
        updated = (
            self.db.query(Event)
            .filter(Event.id == event_id)
            .update({"scheduled_for_deletion_at": at, "updated_at": self.clock.now()}, synchronize_session=False)
        )
        if not updated:
            raise EventNotFoundError(event_id)

        self._log_lifecycle_event(
            event_id,
            LifecycleEventType.DELETION_SCHEDULED,
            event_metadata={"scheduled_for": at.isoformat()},
        )
        self.db.commit()
        logger.info(f"Scheduled event {event_id} for deletion at {at.isoformat()}")
        return at

    def cancel_scheduled_deletion(self, event_id: uuid.UUID) -> bool:
        """Clear a pending deletion. Returns False when nothing was scheduled."""
        updated = (
            self.db.query(Event)
            .filter(Event.id == event_id, Event.scheduled_for_deletion_at.isnot(None))
            .update({"scheduled_for_deletion_at": None, "updated_at": self.clock.now()}, synchronize_session=False)
        )
        if not updated:
            self._ensure_exists(event_id)
            return False

        self._log_lifecycle_event(event_id, LifecycleEventType.DELETION_CANCELLED)
        self.db.commit()
        logger.info(f"Cancelled scheduled deletion of event {event_id}")
        return True

    def update_retention_settings(
        self,
        event_id: uuid.UUID,
        data_retention_months=UNSET,
        wall_retention_months=UNSET,
    ) -> None:
        """
        Update an event's retention settings.

        Only updates fields that are explicitly provided. Providing
        data_retention_months moves the archival date, so the notification
        flag and timestamp are reset and the warning is re-evaluated against
        the new date.
        """
        values: dict = {}
        if data_retention_months is not UNSET:
            _check_months(
                "Data retention",
                data_retention_months,
                RetentionLimits.DATA_RETENTION_MONTHS_MIN,
                RetentionLimits.DATA_RETENTION_MONTHS_MAX,
            )
            values["data_retention_months"] = data_retention_months
            values["retention_notification_sent"] = False
            values["retention_notification_sent_at"] = None
        if wall_retention_months is not UNSET:
            if wall_retention_months is not None:
                _check_months(
                    "Wall retention",
                    wall_retention_months,
                    RetentionLimits.WALL_RETENTION_MONTHS_MIN,
                    RetentionLimits.WALL_RETENTION_MONTHS_MAX,
                )
            values["wall_retention_months"] = wall_retention_months

        self._ensure_exists(event_id)
        if not values:
            return

        values["updated_at"] = self.clock.now()
        self.db.query(Event).filter(Event.id == event_id).update(values, synchronize_session=False)

        self._log_lifecycle_event(
            event_id,
            LifecycleEventType.RETENTION_SETTINGS_UPDATED,
            event_metadata={
                key: values[key]
                for key in ("data_retention_months", "wall_retention_months")
                if key in values
            },
        )
        self.db.commit()
        logger.info(f"Updated retention settings for event {event_id}: {sorted(values)}")
