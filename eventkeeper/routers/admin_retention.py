# eventkeeper/routers/admin_retention.py
"""
Admin endpoints for the retention job.

GET  /v1/admin/retention/preview     - What the next run would do
POST /v1/admin/retention/run         - Trigger a retention run
POST /v1/admin/retention/sync-states - Persist COMPLETED for ended events
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from eventkeeper.auth import require_admin_key
from eventkeeper.constants import Initiators
from eventkeeper.database import get_db
from eventkeeper.services.retention import (
    Clock,
    RetentionJobResult,
    get_clock,
    preview_retention,
    run_retention_job,
    sync_event_states,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/retention", tags=["admin-retention"])


# -----------------------------------------------------------------------------
# Response Models
# -----------------------------------------------------------------------------


class RetentionPreviewResponse(BaseModel):
    """Preview of the next retention run."""

    as_of: str
    would_sync: int
    would_notify: list[str]
    would_archive: list[str]
    would_delete: list[str]
    would_delete_wall_posts: int


class RetentionRunResponse(BaseModel):
    """Retention run result."""

    success: bool
    dry_run: bool
    trace_id: str | None = None
    states_synced: int
    notifications_sent: int
    organizers_notified: int
    events_archived: int
    events_deleted: int
    wall_posts_deleted: int
    errors: list[dict[str, str]]


class RetentionRunRequest(BaseModel):
    """Request to trigger a retention run."""

    batch_size: int | None = Field(None, ge=1, le=10_000, description="Rows loaded per query page")
    dry_run: bool = Field(False, description="Preview only, don't write")
    confirm: bool = Field(False, description="Required confirmation for non-dry-run")


def _to_response(result: RetentionJobResult) -> RetentionRunResponse:
    return RetentionRunResponse(
        success=result.success,
        dry_run=result.dry_run,
        trace_id=result.trace_id,
        states_synced=result.states_synced,
        notifications_sent=result.notifications_sent,
        organizers_notified=result.organizers_notified,
        events_archived=result.events_archived,
        events_deleted=result.events_deleted,
        wall_posts_deleted=result.wall_posts_deleted,
        errors=result.errors,
    )


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.get("/preview", response_model=RetentionPreviewResponse)
def get_preview(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _: None = Depends(require_admin_key),
) -> RetentionPreviewResponse:
    """
    Preview what the next retention run would do.

    Lists events that would be notified, archived and deleted, and how many
    wall posts would be removed. Nothing is written.
    """
    return RetentionPreviewResponse(**preview_retention(db, clock))


@router.post("/run", response_model=RetentionRunResponse)
def trigger_run(
    request: RetentionRunRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _: None = Depends(require_admin_key),
) -> RetentionRunResponse:
    """
    Trigger a retention run.

    **WARNING**: This permanently deletes events whose scheduled deletion is due.

    Requires `confirm: true` for non-dry-run operations.
    """
    if not request.dry_run and not request.confirm:
        raise HTTPException(
            status_code=400,
            detail="Retention run requires 'confirm: true' for non-dry-run operations",
        )

    result = run_retention_job(
        db,
        clock=clock,
        batch_size=request.batch_size,
        initiated_by=Initiators.ADMIN,
        dry_run=request.dry_run,
    )
    return _to_response(result)


@router.post("/sync-states", response_model=RetentionRunResponse)
def trigger_state_sync(
    dry_run: bool = Query(False, description="Preview only"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _: None = Depends(require_admin_key),
) -> RetentionRunResponse:
    """Persist COMPLETED for events that have ended."""
    result = sync_event_states(db, clock=clock, initiated_by=Initiators.ADMIN, dry_run=dry_run)
    return _to_response(result)
