# eventkeeper/services/retention/job.py
"""
Daily retention job.

Run periodically (e.g. daily at 02:00 via cron) to:
1. Persist COMPLETED for events that have ended (sync step)
2. Warn organizers 30 days before their event's data is archived
3. Archive events past their retention period
4. Permanently delete events whose scheduled deletion is due
5. Delete wall posts past the event's wall retention period

Steps 2-4 are selected by the planner from snapshots loaded after step 1
has been committed. Every write is conditional, so overlapping or repeated
runs are safe; a failed event is rolled back, recorded and picked up again
by the next run.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from eventkeeper.config import get_settings
from eventkeeper.constants import Initiators
from eventkeeper.logging_config import log_stage, new_trace_id
from eventkeeper.services.retention.clock import Clock, SystemClock
from eventkeeper.services.retention.executor import RetentionExecutor
from eventkeeper.services.retention.planner import plan
from eventkeeper.services.retention.repository import (
    load_retention_candidates,
    load_sync_candidates,
    load_wall_posts,
    load_wall_retention_events,
)
from eventkeeper.services.retention.state_resolver import apply_state_sync, state_to_store
from eventkeeper.services.retention.types import EventSnapshot, PlannerOutput
from eventkeeper.services.retention.wall_sweeper import expired_wall_post_ids

logger = logging.getLogger(__name__)


@dataclass
class RetentionJobResult:
    """Result of a retention job run."""
    success: bool = True
    dry_run: bool = False
    trace_id: str | None = None
    states_synced: int = 0
    notifications_sent: int = 0
    organizers_notified: int = 0
    events_archived: int = 0
    events_deleted: int = 0
    wall_posts_deleted: int = 0
    errors: list[dict] = field(default_factory=list)

    def record_error(self, event_id: uuid.UUID, error: Exception) -> None:
        self.errors.append({"event_id": str(event_id), "error": str(error)})
        self.success = False


def _apply(
    db: Session,
    result: RetentionJobResult,
    event_id: uuid.UUID,
    action: str,
    command: Callable[[], object],
):
    """Run one executor command, rolling back and recording any failure."""
    try:
        return command()
    except Exception as e:
        db.rollback()
        logger.error(
            f"Failed to {action} event {event_id}: {e}",
            extra={"event": f"{action}_failed", "event_id": str(event_id)},
            exc_info=True,
        )
        result.record_error(event_id, e)
        return None


def _sync_states(
    db: Session,
    executor: RetentionExecutor,
    now: datetime,
    batch_size: int,
    result: RetentionJobResult,
    dry_run: bool = False,
) -> list[EventSnapshot]:
    """
    Persist COMPLETED for events that have effectively completed.

    Returns the loaded sync candidates (with the sync applied in memory), so
    dry runs can plan against what a real run would see.
    """
    candidates = load_sync_candidates(db, batch_size=batch_size)

    for event in candidates:
        new_state = state_to_store(event, now)
        if new_state is None:
            continue

        if dry_run:
            result.states_synced += 1
            continue

        applied = _apply(db, result, event.id, "sync", lambda: executor.sync_state(event.id, new_state, now))
        if applied:
            result.states_synced += 1

    return apply_state_sync(candidates, now)


def sync_event_states(
    db: Session,
    clock: Clock | None = None,
    batch_size: int | None = None,
    initiated_by: str = Initiators.SCHEDULER,
    dry_run: bool = False,
) -> RetentionJobResult:
    """
    Run only the sync step of the retention job.

    Persists COMPLETED for every event that has ended but is still stored
    with an earlier state.
    """
    clock = clock or SystemClock()
    batch_size = batch_size or get_settings().RETENTION_BATCH_SIZE

    trace_id = new_trace_id()
    result = RetentionJobResult(dry_run=dry_run, trace_id=trace_id)
    executor = RetentionExecutor(db, clock=clock, initiated_by=initiated_by)

    with log_stage("sync", trace_id=trace_id) as metrics:
        _sync_states(db, executor, clock.now(), batch_size, result, dry_run=dry_run)
        metrics["items_processed"] = result.states_synced
        metrics["items_failed"] = len(result.errors)

    return result


def _plan_run(
    db: Session,
    now: datetime,
    batch_size: int,
    synced_in_memory: list[EventSnapshot] | None = None,
) -> PlannerOutput:
    snapshots = load_retention_candidates(db, batch_size=batch_size)
    if synced_in_memory:
        seen = {event.id for event in snapshots}
        snapshots.extend(event for event in synced_in_memory if event.id not in seen)
    return plan(snapshots, now)


def _sweep_wall_posts(
    db: Session,
    executor: RetentionExecutor,
    now: datetime,
    batch_size: int,
    result: RetentionJobResult,
    dry_run: bool,
) -> None:
    for event in load_wall_retention_events(db, batch_size=batch_size):
        posts = load_wall_posts(db, event.id)
        expired = expired_wall_post_ids(event.id, event.wall_retention_months, posts, now)
        if not expired:
            continue

        if dry_run:
            result.wall_posts_deleted += len(expired)
            continue

        deleted = _apply(
            db, result, event.id, "sweep_wall", lambda: executor.delete_wall_posts(event.id, expired)
        )
        result.wall_posts_deleted += deleted or 0


def run_retention_job(
    db: Session,
    clock: Clock | None = None,
    batch_size: int | None = None,
    initiated_by: str = Initiators.SCHEDULER,
    dry_run: bool = False,
) -> RetentionJobResult:
    """
    Run the full retention pipeline once.

    Args:
        db: Database session
        clock: Source of "now"; one instant is used for the whole run
        batch_size: Rows loaded per query page (defaults to RETENTION_BATCH_SIZE)
        initiated_by: Recorded on audit rows
        dry_run: If True, count what would happen without writing

    Returns:
        RetentionJobResult with operation summary
    """
    clock = clock or SystemClock()
    batch_size = batch_size or get_settings().RETENTION_BATCH_SIZE
    now = clock.now()

    trace_id = new_trace_id()
    result = RetentionJobResult(dry_run=dry_run, trace_id=trace_id)
    executor = RetentionExecutor(db, clock=clock, initiated_by=initiated_by)

    logger.info(
        f"Starting retention job (dry_run={dry_run})",
        extra={"event": "retention_job_start", "dry_run": dry_run, "initiated_by": initiated_by},
    )

    # Step 1: sync must be committed before planning
    with log_stage("sync", trace_id=trace_id) as metrics:
        synced = _sync_states(db, executor, now, batch_size, result, dry_run=dry_run)
        metrics["items_processed"] = result.states_synced

    with log_stage("plan", trace_id=trace_id) as metrics:
        decisions = _plan_run(db, now, batch_size, synced_in_memory=synced if dry_run else None)
        metrics["items_processed"] = sum(decisions.counts().values())

    # Step 2: notify organizers
    with log_stage("notify", trace_id=trace_id) as metrics:
        for event_id in decisions.to_notify:
            if dry_run:
                result.notifications_sent += 1
                continue
            sent = _apply(db, result, event_id, "notify", lambda: executor.notify_organizers(event_id, now))
            if sent:
                result.notifications_sent += 1
                result.organizers_notified += sent
        metrics["items_processed"] = result.notifications_sent

    # Step 3: archive
    with log_stage("archive", trace_id=trace_id) as metrics:
        for event_id in decisions.to_archive:
            if dry_run:
                result.events_archived += 1
                continue
            if _apply(db, result, event_id, "archive", lambda: executor.archive(event_id, now)):
                result.events_archived += 1
        metrics["items_processed"] = result.events_archived

    # Step 4: permanent deletion
    with log_stage("delete", trace_id=trace_id) as metrics:
        for event_id in decisions.to_delete:
            if dry_run:
                result.events_deleted += 1
                continue
            if _apply(db, result, event_id, "delete", lambda: executor.permanently_delete(event_id, now)):
                result.events_deleted += 1
        metrics["items_processed"] = result.events_deleted

    # Step 5: wall posts
    with log_stage("wall_sweep", trace_id=trace_id) as metrics:
        _sweep_wall_posts(db, executor, now, batch_size, result, dry_run)
        metrics["items_processed"] = result.wall_posts_deleted

    logger.info(
        f"Retention job complete: {result.states_synced} synced, "
        f"{result.notifications_sent} notified, {result.events_archived} archived, "
        f"{result.events_deleted} deleted, {result.wall_posts_deleted} wall posts deleted, "
        f"{len(result.errors)} errors (dry_run={dry_run})",
        extra={
            "event": "retention_job_complete",
            "dry_run": dry_run,
            "items_failed": len(result.errors),
        },
    )
    return result


def preview_retention(db: Session, clock: Clock | None = None, batch_size: int | None = None) -> dict:
    """
    Preview what the next retention run would do, without writing.

    Useful for admin dashboard and CLI status display.
    """
    clock = clock or SystemClock()
    batch_size = batch_size or get_settings().RETENTION_BATCH_SIZE
    now = clock.now()

    candidates = load_sync_candidates(db, batch_size=batch_size)
    would_sync = sum(1 for event in candidates if state_to_store(event, now) is not None)
    decisions = _plan_run(db, now, batch_size, synced_in_memory=apply_state_sync(candidates, now))

    pending_wall_posts = 0
    for event in load_wall_retention_events(db, batch_size=batch_size):
        posts = load_wall_posts(db, event.id)
        pending_wall_posts += len(expired_wall_post_ids(event.id, event.wall_retention_months, posts, now))

    return {
        "as_of": now.isoformat(),
        "would_sync": would_sync,
        "would_notify": [str(event_id) for event_id in decisions.to_notify],
        "would_archive": [str(event_id) for event_id in decisions.to_archive],
        "would_delete": [str(event_id) for event_id in decisions.to_delete],
        "would_delete_wall_posts": pending_wall_posts,
    }
