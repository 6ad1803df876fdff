# eventkeeper/services/retention/planner.py
"""
Retention command planner.

Turns a batch of event snapshots into the set of commands the executor
should apply: notify organizers, archive, permanently delete. The planner
never touches storage.

Precondition: the sync step (state_to_store) must have been persisted and
committed for the same snapshot set before plan() runs. Notification and
archival selection trust stored_state == COMPLETED and do not recompute the
time-derived state, so an unsynced event that has effectively completed is
silently skipped until the next run.
"""

from collections.abc import Iterable
from datetime import datetime

from eventkeeper.services.retention.calculator import is_ready_for_archival, should_notify
from eventkeeper.services.retention.types import EventSnapshot, EventState, PlannerOutput


def is_ready_for_deletion(event: EventSnapshot, now: datetime) -> bool:
    """Scheduled deletions become executable once their instant has passed."""
    return event.scheduled_for_deletion_at is not None and now >= event.scheduled_for_deletion_at


def _is_retention_candidate(event: EventSnapshot) -> bool:
    return event.stored_state == EventState.COMPLETED and event.archived_at is None


def plan(events: Iterable[EventSnapshot], now: datetime) -> PlannerOutput:
    """
    Select events for notification, archival and deletion.

    Lists are disjoint within one call and keep input order:
    - an event due for deletion is only deleted;
    - an event due for both warning and archival is only warned; it becomes
      archivable on the next run, once its notification flag is stored.
    """
    output = PlannerOutput()

    for event in events:
        if is_ready_for_deletion(event, now):
            output.to_delete.append(event.id)
            continue

        if not _is_retention_candidate(event):
            continue

        if should_notify(event, now):
            output.to_notify.append(event.id)
        elif is_ready_for_archival(event, now):
            output.to_archive.append(event.id)

    return output
