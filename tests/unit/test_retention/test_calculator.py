# tests/unit/test_retention/test_calculator.py
"""Unit tests for retention date calculations."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from eventkeeper.services.retention.calculator import (
    add_months,
    archival_date,
    deletion_date,
    is_ready_for_archival,
    notification_date,
    should_notify,
)
from eventkeeper.services.retention.types import EventSnapshot, EventState

END = datetime(2024, 1, 15, 20, 0, tzinfo=UTC)


def make_completed(**overrides) -> EventSnapshot:
    values = {
        "id": uuid.uuid4(),
        "stored_state": EventState.COMPLETED,
        "start_at": END - timedelta(hours=2),
        "end_at": END,
        "created_at": END - timedelta(days=60),
        "data_retention_months": 24,
    }
    values.update(overrides)
    return EventSnapshot(**values)


class TestAddMonths:
    """Tests for add_months()."""

    @pytest.mark.parametrize(
        "start,months,expected",
        [
            (datetime(2024, 1, 15, 20, 0, tzinfo=UTC), 24, datetime(2026, 1, 15, 20, 0, tzinfo=UTC)),
            (datetime(2023, 1, 31, tzinfo=UTC), 1, datetime(2023, 2, 28, tzinfo=UTC)),
            (datetime(2024, 1, 31, tzinfo=UTC), 1, datetime(2024, 2, 29, tzinfo=UTC)),
            (datetime(2024, 3, 31, tzinfo=UTC), -1, datetime(2024, 2, 29, tzinfo=UTC)),
            (datetime(2024, 12, 15, tzinfo=UTC), 1, datetime(2025, 1, 15, tzinfo=UTC)),
            (datetime(2024, 1, 15, tzinfo=UTC), -2, datetime(2023, 11, 15, tzinfo=UTC)),
            (datetime(2024, 8, 31, tzinfo=UTC), -40, datetime(2021, 4, 30, tzinfo=UTC)),
        ],
    )
    def test_calendar_month_arithmetic(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_preserves_time_and_tz(self):
        result = add_months(datetime(2024, 5, 31, 23, 59, 59, tzinfo=UTC), 1)
        assert result == datetime(2024, 6, 30, 23, 59, 59, tzinfo=UTC)
        assert result.tzinfo is UTC

    @pytest.mark.parametrize("months", [10**6, -(10**5)])
    def test_out_of_range_raises_overflow(self, months):
        with pytest.raises(OverflowError):
            add_months(END, months)


class TestArchivalDate:
    """Tests for archival_date()."""

    def test_end_plus_retention_months(self):
        event = make_completed()
        assert archival_date(event, END + timedelta(days=1)) == datetime(2026, 1, 15, 20, 0, tzinfo=UTC)

    def test_uses_start_when_no_end(self):
        start = datetime(2024, 1, 15, 18, 0, tzinfo=UTC)
        event = make_completed(start_at=start, end_at=None)
        assert archival_date(event, END + timedelta(days=1)) == datetime(2026, 1, 15, 18, 0, tzinfo=UTC)

    def test_none_when_not_completed(self):
        event = make_completed(stored_state=EventState.PUBLISHED)
        assert archival_date(event, END - timedelta(hours=1)) is None

    def test_none_when_cancelled(self):
        event = make_completed(stored_state=EventState.CANCELLED)
        assert archival_date(event, END + timedelta(days=900)) is None

    @pytest.mark.parametrize("months", [0, -6])
    def test_none_when_retention_disabled(self, months):
        event = make_completed(data_retention_months=months)
        assert archival_date(event, END + timedelta(days=1)) is None

    def test_none_when_retention_exceeds_calendar(self):
        event = make_completed(data_retention_months=10**6)
        now = datetime(2030, 1, 1, tzinfo=UTC)

        assert archival_date(event, now) is None
        assert notification_date(event, now) is None
        assert should_notify(event, now) is False
        assert is_ready_for_archival(event, now) is False


class TestShouldNotify:
    """Tests for should_notify() and notification_date()."""

    def test_notification_window_opens_30_days_before(self):
        event = make_completed()

        assert should_notify(event, datetime(2025, 12, 16, 0, 0, tzinfo=UTC)) is True
        assert should_notify(event, datetime(2025, 12, 15, 0, 0, tzinfo=UTC)) is False

    def test_notification_date_is_start_of_day(self):
        event = make_completed()
        assert notification_date(event, END + timedelta(days=1)) == datetime(2025, 12, 16, 0, 0, tzinfo=UTC)

    def test_false_when_already_sent(self):
        event = make_completed(retention_notification_sent=True)
        assert should_notify(event, datetime(2026, 1, 1, tzinfo=UTC)) is False

    def test_false_when_not_completed(self):
        event = make_completed(stored_state=EventState.DRAFT)
        assert should_notify(event, datetime(2026, 1, 1, tzinfo=UTC)) is False

    def test_false_when_retention_disabled(self):
        event = make_completed(data_retention_months=0)
        assert should_notify(event, datetime(2030, 1, 1, tzinfo=UTC)) is False


class TestIsReadyForArchival:
    """Tests for is_ready_for_archival()."""

    def test_ready_at_archival_date(self):
        event = make_completed()
        assert is_ready_for_archival(event, datetime(2026, 1, 15, 20, 0, tzinfo=UTC)) is True

    def test_not_ready_before(self):
        event = make_completed()
        assert is_ready_for_archival(event, datetime(2026, 1, 15, 19, 59, 59, tzinfo=UTC)) is False

    def test_not_ready_when_archived(self):
        event = make_completed(archived_at=datetime(2026, 1, 16, tzinfo=UTC))
        assert is_ready_for_archival(event, datetime(2026, 6, 1, tzinfo=UTC)) is False


class TestDeletionDate:
    def test_default_grace_period(self):
        now = datetime(2026, 2, 1, 12, 0, tzinfo=UTC)
        assert deletion_date(now) == datetime(2026, 3, 3, 12, 0, tzinfo=UTC)

    def test_custom_grace_period(self):
        now = datetime(2026, 2, 1, 12, 0, tzinfo=UTC)
        assert deletion_date(now, 1) == datetime(2026, 2, 2, 12, 0, tzinfo=UTC)
