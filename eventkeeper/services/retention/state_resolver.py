# eventkeeper/services/retention/state_resolver.py
"""
Effective lifecycle state of an event.

State transition rules:
- DRAFT: stays draft until explicitly published
- CANCELLED: terminal
- PUBLISHED -> CLOSED when the RSVP deadline passes
- PUBLISHED/CLOSED -> ONGOING when the start time passes
- ONGOING -> COMPLETED when the end time passes

State is computed on read instead of being advanced by a background worker.
Only COMPLETED is ever written back (see state_to_store).
"""

import dataclasses
from collections.abc import Iterable
from datetime import datetime

from eventkeeper.constants import LifecycleDefaults
from eventkeeper.services.retention.types import (
    TERMINAL_STATES,
    EventSnapshot,
    EventState,
)

STATE_LABELS = {
    EventState.DRAFT: "Draft",
    EventState.PUBLISHED: "Published",
    EventState.CLOSED: "RSVPs Closed",
    EventState.ONGOING: "In Progress",
    EventState.COMPLETED: "Completed",
    EventState.CANCELLED: "Cancelled",
}


def effective_end(event: EventSnapshot) -> datetime:
    """End instant, falling back to start + default duration."""
    if event.end_at is not None:
        return event.end_at
    return event.start_at + LifecycleDefaults.DEFAULT_EVENT_DURATION


def resolve_state(event: EventSnapshot, now: datetime) -> EventState:
    """Compute the effective state of an event from its stored state and now."""
    if event.stored_state in TERMINAL_STATES:
        return event.stored_state

    if now >= effective_end(event):
        return EventState.COMPLETED

    if now >= event.start_at:
        return EventState.ONGOING

    if event.rsvp_deadline is not None and now >= event.rsvp_deadline:
        return EventState.CLOSED

    # Expected to be PUBLISHED here
    return event.stored_state


def can_accept_rsvps(event: EventSnapshot, now: datetime) -> bool:
    return resolve_state(event, now) == EventState.PUBLISHED


def can_be_cancelled(event: EventSnapshot, now: datetime) -> bool:
    return resolve_state(event, now) not in (EventState.CANCELLED, EventState.COMPLETED)


def state_to_store(event: EventSnapshot, now: datetime) -> EventState | None:
    """
    State that should be persisted for this event, if any.

    Returns COMPLETED when the event has effectively completed but is not yet
    stored as such. CLOSED and ONGOING are cheap to recompute and are never
    written back.
    """
    if event.stored_state == EventState.COMPLETED:
        return None
    if resolve_state(event, now) == EventState.COMPLETED:
        return EventState.COMPLETED
    return None


def apply_state_sync(events: Iterable[EventSnapshot], now: datetime) -> list[EventSnapshot]:
    """
    Return snapshots as they would look after the sync step persisted.

    Used by dry runs, which cannot commit the sync step but still need the
    planner to see the completed events a real run would see.
    """
    synced = []
    for event in events:
        new_state = state_to_store(event, now)
        if new_state is not None:
            event = dataclasses.replace(event, stored_state=new_state)
        synced.append(event)
    return synced


def state_label(state: EventState) -> str:
    """Human-readable state label."""
    return STATE_LABELS.get(state, state.value)
