# eventkeeper/services/retention/errors.py
"""Exceptions raised by retention actions that touch storage."""

import uuid


class EventNotFoundError(LookupError):
    """The event does not exist (or was permanently deleted)."""

    def __init__(self, event_id: uuid.UUID):
        super().__init__(f"Event {event_id} not found")
        self.event_id = event_id


class RetentionActionError(ValueError):
    """An organizer action does not apply to the event in its current state."""
