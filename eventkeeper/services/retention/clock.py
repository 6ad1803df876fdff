# eventkeeper/services/retention/clock.py
"""
Clock abstraction.

All lifecycle and retention logic takes "now" as an argument; the clock is
the one place that reads wall time, so jobs and endpoints can be pinned to a
fixed instant in tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current instant as an aware UTC datetime."""
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """A clock frozen at a given instant, optionally advanced by hand."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta: timedelta) -> datetime:
        self._instant = self._instant + delta
        return self._instant


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return SystemClock()
