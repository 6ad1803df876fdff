# eventkeeper/services/retention/__init__.py
"""
Event lifecycle and data retention for eventkeeper.

Lifecycle state is derived from stored state and the current time; only
COMPLETED is written back. Completed events are kept for a configurable
number of months, organizers are warned 30 days before archival, and
organizers may schedule a permanent deletion after a grace period.

Modules:
- state_resolver: Effective state of an event
- calculator: Archival and notification dates
- planner: Which events to notify, archive or delete
- wall_sweeper: Which wall posts have expired
- executor: Conditional writes applying those decisions
- job: Daily orchestration (sync, plan, apply, sweep)
"""

from eventkeeper.services.retention.calculator import (
    add_months,
    archival_date,
    deletion_date,
    is_ready_for_archival,
    notification_date,
    should_notify,
)
from eventkeeper.services.retention.clock import Clock, FixedClock, SystemClock, get_clock
from eventkeeper.services.retention.errors import EventNotFoundError, RetentionActionError
from eventkeeper.services.retention.executor import UNSET, RetentionExecutor
from eventkeeper.services.retention.job import (
    RetentionJobResult,
    preview_retention,
    run_retention_job,
    sync_event_states,
)
from eventkeeper.services.retention.planner import is_ready_for_deletion, plan
from eventkeeper.services.retention.state_resolver import (
    apply_state_sync,
    can_accept_rsvps,
    can_be_cancelled,
    resolve_state,
    state_label,
    state_to_store,
)
from eventkeeper.services.retention.types import (
    EventSnapshot,
    EventState,
    PlannerOutput,
    WallPostSnapshot,
)
from eventkeeper.services.retention.wall_sweeper import expired_wall_post_ids, wall_cutoff

__all__ = [
    # Types
    "EventState",
    "EventSnapshot",
    "WallPostSnapshot",
    "PlannerOutput",
    # Clock
    "Clock",
    "SystemClock",
    "FixedClock",
    "get_clock",
    # State
    "resolve_state",
    "can_accept_rsvps",
    "can_be_cancelled",
    "state_to_store",
    "apply_state_sync",
    "state_label",
    # Dates
    "add_months",
    "archival_date",
    "notification_date",
    "should_notify",
    "is_ready_for_archival",
    "deletion_date",
    # Planning
    "plan",
    "is_ready_for_deletion",
    "expired_wall_post_ids",
    "wall_cutoff",
    # Execution
    "RetentionExecutor",
    "UNSET",
    "EventNotFoundError",
    "RetentionActionError",
    "run_retention_job",
    "sync_event_states",
    "preview_retention",
    "RetentionJobResult",
]
