# eventkeeper/services/retention/repository.py
"""
Read side of the retention engine.

Loads ORM rows and projects them into immutable snapshots. Queries only
narrow the candidate set; every time-based decision is made by the pure
engine functions.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session

from eventkeeper.models import Event, RoleType, WallPost
from eventkeeper.services.retention.errors import EventNotFoundError
from eventkeeper.services.retention.types import (
    EventSnapshot,
    EventState,
    WallPostSnapshot,
)

_NON_SYNCABLE_STATES = (
    EventState.DRAFT.value,
    EventState.CANCELLED.value,
    EventState.COMPLETED.value,
)


def as_utc(value: datetime | None) -> datetime | None:
    """Interpret naive datetimes (SQLite) as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_event_snapshot(event: Event) -> EventSnapshot:
    return EventSnapshot(
        id=event.id,
        stored_state=EventState(event.state),
        start_at=as_utc(event.start_at),
        end_at=as_utc(event.end_at),
        rsvp_deadline=as_utc(event.rsvp_deadline),
        data_retention_months=event.data_retention_months,
        wall_retention_months=event.wall_retention_months,
        retention_notification_sent=bool(event.retention_notification_sent),
        retention_notification_sent_at=as_utc(event.retention_notification_sent_at),
        archived_at=as_utc(event.archived_at),
        scheduled_for_deletion_at=as_utc(event.scheduled_for_deletion_at),
        created_at=as_utc(event.created_at),
    )


def to_wall_post_snapshot(post: WallPost) -> WallPostSnapshot:
    return WallPostSnapshot(id=post.id, event_id=post.event_id, created_at=as_utc(post.created_at))


def get_event(db: Session, event_id: uuid.UUID) -> Event:
    """Fetch an event row or raise EventNotFoundError."""
    event = db.query(Event).filter(Event.id == event_id).first()
    if event is None:
        raise EventNotFoundError(event_id)
    return event


def get_event_snapshot(db: Session, event_id: uuid.UUID) -> EventSnapshot:
    return to_event_snapshot(get_event(db, event_id))


def _load_in_pages(query: Query, batch_size: int) -> list[EventSnapshot]:
    """
    Load every event matching the query, batch_size rows at a time.

    Pages are keyed on (start_at, id), so rows that stay in the result set
    (events not due yet) never hide the rows behind them.
    """
    snapshots: list[EventSnapshot] = []
    last_key = None

    while True:
        page_query = query
        if last_key is not None:
            last_start, last_id = last_key
            page_query = page_query.filter(
                or_(
                    Event.start_at > last_start,
                    and_(Event.start_at == last_start, Event.id > last_id),
                )
            )

        rows = (
            page_query.order_by(Event.start_at.asc(), Event.id.asc())  # Oldest first
            .limit(batch_size)
            .all()
        )
        snapshots.extend(to_event_snapshot(row) for row in rows)

        if len(rows) < batch_size:
            return snapshots
        last_key = (rows[-1].start_at, rows[-1].id)


def load_sync_candidates(db: Session, batch_size: int = 500) -> list[EventSnapshot]:
    """
    Events whose stored state may still need to be advanced to COMPLETED.

    Excludes terminal states and events already stored as COMPLETED.
    """
    query = db.query(Event).filter(Event.state.notin_(_NON_SYNCABLE_STATES))
    return _load_in_pages(query, batch_size)


def load_retention_candidates(db: Session, batch_size: int = 500) -> list[EventSnapshot]:
    """
    Events the planner may select.

    Returns events that are either:
    - stored as COMPLETED and not archived (notification / archival), or
    - scheduled for deletion (deletion)
    """
    query = db.query(Event).filter(
        or_(
            and_(
                Event.state == EventState.COMPLETED.value,
                Event.archived_at.is_(None),
            ),
            Event.scheduled_for_deletion_at.isnot(None),
        )
    )
    return _load_in_pages(query, batch_size)


def load_wall_retention_events(db: Session, batch_size: int = 500) -> list[EventSnapshot]:
    """Events with a wall retention window configured."""
    query = db.query(Event).filter(
        Event.wall_retention_months.isnot(None),
        Event.wall_retention_months > 0,
    )
    return _load_in_pages(query, batch_size)


def load_wall_posts(db: Session, event_id: uuid.UUID) -> list[WallPostSnapshot]:
    rows = (
        db.query(WallPost)
        .filter(WallPost.event_id == event_id)
        .order_by(WallPost.created_at.asc())
        .all()
    )
    return [to_wall_post_snapshot(row) for row in rows]


def organizer_ids(event: Event) -> list[uuid.UUID]:
    """Creator plus co-organizers, creator first, without duplicates."""
    recipients = [event.creator_id]
    for role in event.roles:
        if role.role == RoleType.ORGANIZER.value and role.user_id not in recipients:
            recipients.append(role.user_id)
    return recipients
