# eventkeeper/routers/retention.py
"""
Event lifecycle and retention endpoints for organizers.

GET    /v1/events/{event_id}/state             - Effective lifecycle state
GET    /v1/events/{event_id}/retention         - Retention settings and status
PUT    /v1/events/{event_id}/retention         - Update retention settings
POST   /v1/events/{event_id}/archive           - Archive a completed event now
POST   /v1/events/{event_id}/schedule-deletion - Schedule permanent deletion
DELETE /v1/events/{event_id}/schedule-deletion - Cancel scheduled deletion
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from eventkeeper.constants import Initiators, RetentionDefaults
from eventkeeper.database import get_db
from eventkeeper.schemas.retention import (
    ArchiveEventResponse,
    CancelDeletionResponse,
    EventStateResponse,
    RetentionSettingsResponse,
    RetentionSettingsUpdate,
    ScheduleDeletionRequest,
    ScheduleDeletionResponse,
)
from eventkeeper.services.retention import (
    Clock,
    EventNotFoundError,
    RetentionActionError,
    RetentionExecutor,
    archival_date,
    can_accept_rsvps,
    can_be_cancelled,
    get_clock,
    notification_date,
    resolve_state,
    state_label,
)
from eventkeeper.services.retention.repository import get_event_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/events", tags=["retention"])


def _executor(db: Session, clock: Clock) -> RetentionExecutor:
    return RetentionExecutor(db, clock=clock, initiated_by=Initiators.ORGANIZER)


def _retention_response(db: Session, event_id: uuid.UUID, clock: Clock) -> RetentionSettingsResponse:
    now = clock.now()
    event = get_event_snapshot(db, event_id)
    return RetentionSettingsResponse(
        event_id=event.id,
        state=resolve_state(event, now).value,
        data_retention_months=event.data_retention_months,
        wall_retention_months=event.wall_retention_months,
        retention_notification_sent=event.retention_notification_sent,
        retention_notification_sent_at=event.retention_notification_sent_at,
        archived_at=event.archived_at,
        scheduled_for_deletion_at=event.scheduled_for_deletion_at,
        archival_date=archival_date(event, now),
        notification_date=notification_date(event, now),
    )


@router.get("/{event_id}/state", response_model=EventStateResponse)
def get_event_state(
    event_id: uuid.UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> EventStateResponse:
    """
    Get the effective lifecycle state of an event.

    The state is derived from the stored state and the current time, so an
    event past its end time reports COMPLETED even before the retention job
    has stored it.
    """
    now = clock.now()
    try:
        event = get_event_snapshot(db, event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    state = resolve_state(event, now)
    return EventStateResponse(
        event_id=event.id,
        state=state.value,
        label=state_label(state),
        stored_state=event.stored_state.value,
        can_accept_rsvps=can_accept_rsvps(event, now),
        can_be_cancelled=can_be_cancelled(event, now),
        as_of=now,
    )


@router.get("/{event_id}/retention", response_model=RetentionSettingsResponse)
def get_retention_settings(
    event_id: uuid.UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RetentionSettingsResponse:
    """Get retention settings and status for an event."""
    try:
        return _retention_response(db, event_id, clock)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{event_id}/retention", response_model=RetentionSettingsResponse)
def update_retention_settings(
    event_id: uuid.UUID,
    request: RetentionSettingsUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RetentionSettingsResponse:
    """
    Update retention settings.

    Changing data_retention_months resets the retention notification, so
    organizers are warned again before the new archival date.
    """
    provided = request.model_fields_set
    if not provided:
        raise HTTPException(status_code=400, detail="No retention settings provided")
    if "data_retention_months" in provided and request.data_retention_months is None:
        raise HTTPException(status_code=400, detail="data_retention_months cannot be null")

    changes = {field: getattr(request, field) for field in provided}
    try:
        _executor(db, clock).update_retention_settings(event_id, **changes)
        return _retention_response(db, event_id, clock)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RetentionActionError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{event_id}/archive", response_model=ArchiveEventResponse)
def archive_event(
    event_id: uuid.UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ArchiveEventResponse:
    """Archive a completed event without waiting for its retention period."""
    try:
        archived_at = _executor(db, clock).archive_event(event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RetentionActionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ArchiveEventResponse(event_id=event_id, archived_at=archived_at)


@router.post("/{event_id}/schedule-deletion", response_model=ScheduleDeletionResponse)
def schedule_deletion(
    event_id: uuid.UUID,
    request: ScheduleDeletionRequest | None = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ScheduleDeletionResponse:
    """
    Schedule permanent deletion of an event and all its data.

    **WARNING**: Once the grace period passes, the retention job deletes the
    event irreversibly. Scheduling again replaces the previous date.
    """
    grace_period_days = (
        request.grace_period_days if request else RetentionDefaults.DELETION_GRACE_PERIOD_DAYS
    )
    try:
        scheduled_at = _executor(db, clock).schedule_deletion_after(event_id, grace_period_days)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RetentionActionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ScheduleDeletionResponse(event_id=event_id, scheduled_for_deletion_at=scheduled_at)


@router.delete("/{event_id}/schedule-deletion", response_model=CancelDeletionResponse)
def cancel_scheduled_deletion(
    event_id: uuid.UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> CancelDeletionResponse:
    """Cancel a scheduled deletion."""
    try:
        cancelled = _executor(db, clock).cancel_scheduled_deletion(event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not cancelled:
        raise HTTPException(status_code=400, detail="Event is not scheduled for deletion")

    return CancelDeletionResponse(event_id=event_id)
