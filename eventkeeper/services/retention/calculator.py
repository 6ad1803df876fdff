# eventkeeper/services/retention/calculator.py
"""
Retention date calculations for completed events.

All functions are total: a disabled retention window (non-positive months)
or an event that has not completed yields None/False instead of raising, so
batch loops over many events never abort on one bad record.
"""

import calendar
from datetime import MAXYEAR, MINYEAR, UTC, datetime, time, timedelta

from eventkeeper.constants import RetentionDefaults
from eventkeeper.services.retention.state_resolver import resolve_state
from eventkeeper.services.retention.types import EventSnapshot, EventState


def add_months(instant: datetime, months: int) -> datetime:
    """
    Shift an instant by whole calendar months (negative subtracts).

    When the target month is shorter than the source day-of-month, the day is
    clamped to the last day of the target month: Jan 31 + 1 month = Feb 28
    (Feb 29 in leap years). Time of day and tzinfo are preserved.

    Raises OverflowError when the result falls outside the datetime range.
    """
    month_index = instant.month - 1 + months
    year = instant.year + month_index // 12
    if not MINYEAR <= year <= MAXYEAR:
        raise OverflowError(f"{months} months from {instant.isoformat()} is out of range")
    month = month_index % 12 + 1
    day = min(instant.day, calendar.monthrange(year, month)[1])
    return instant.replace(year=year, month=month, day=day)


def archival_date(event: EventSnapshot, now: datetime) -> datetime | None:
    """
    When a completed event's data becomes due for archival.

    Baseline is the end time, or the start time when no end is set.
    Returns None for events that have not completed, have retention disabled,
    or whose archival date would fall past year 9999.
    """
    if resolve_state(event, now) != EventState.COMPLETED:
        return None
    if event.data_retention_months is None or event.data_retention_months <= 0:
        return None

    baseline = event.end_at if event.end_at is not None else event.start_at
    try:
        return add_months(baseline, event.data_retention_months)
    except OverflowError:
        # Retention longer than the calendar can express: never archived
        return None


def notification_date(event: EventSnapshot, now: datetime) -> datetime | None:
    """
    Start of the day organizers should be warned about upcoming archival.

    The window opens at 00:00 UTC of the calendar day that falls
    NOTIFICATION_DAYS_BEFORE_ARCHIVAL days before the archival date.
    """
    archive_at = archival_date(event, now)
    if archive_at is None:
        return None

    lead = archive_at.astimezone(UTC) - timedelta(days=RetentionDefaults.NOTIFICATION_DAYS_BEFORE_ARCHIVAL)
    return datetime.combine(lead.date(), time.min, tzinfo=UTC)


def should_notify(event: EventSnapshot, now: datetime) -> bool:
    """Whether the archival warning should be sent now."""
    if event.retention_notification_sent:
        return False

    notify_at = notification_date(event, now)
    if notify_at is None:
        return False

    return now >= notify_at


def is_ready_for_archival(event: EventSnapshot, now: datetime) -> bool:
    """Whether the event has reached its archival date and is not archived yet."""
    if event.archived_at is not None:
        return False

    archive_at = archival_date(event, now)
    if archive_at is None:
        return False

    return now >= archive_at


def deletion_date(
    now: datetime,
    grace_period_days: int = RetentionDefaults.DELETION_GRACE_PERIOD_DAYS,
) -> datetime:
    """Instant at which a deletion scheduled now becomes executable."""
    return now + timedelta(days=grace_period_days)
