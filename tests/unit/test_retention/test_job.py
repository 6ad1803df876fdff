# tests/unit/test_retention/test_job.py
"""Tests for the retention job (in-memory SQLite)."""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from eventkeeper.models import (
    Event,
    EventLifecycleEvent,
    EventRole,
    LifecycleEventType,
    Notification,
    WallPost,
)
from eventkeeper.services.retention import (
    RetentionExecutor,
    preview_retention,
    run_retention_job,
    sync_event_states,
)

NOW = datetime(2026, 2, 1, 12, 0, tzinfo=UTC)

# Ended long enough ago that archival is already due
PAST_RETENTION = {
    "start_at": datetime(2023, 6, 1, 18, 0, tzinfo=UTC),
    "end_at": datetime(2023, 6, 1, 21, 0, tzinfo=UTC),
}

# Archival on 2026-02-20, warning window open since 2026-01-21
IN_WINDOW = {
    "start_at": datetime(2024, 2, 20, 18, 0, tzinfo=UTC),
    "end_at": datetime(2024, 2, 20, 21, 0, tzinfo=UTC),
}


def get_event(db, event_id):
    return db.query(Event).filter(Event.id == event_id).first()


class TestRunRetentionJob:
    """Tests for run_retention_job()."""

    def test_syncs_completed_state(self, db, clock, make_event):
        ended = make_event(**IN_WINDOW)
        upcoming = make_event()

        result = run_retention_job(db, clock=clock)

        assert result.success is True
        assert result.states_synced == 1
        assert get_event(db, ended).state == "COMPLETED"
        assert get_event(db, upcoming).state == "PUBLISHED"

    def test_synced_events_are_planned_in_same_run(self, db, clock, make_event):
        event_id = make_event(**IN_WINDOW)

        result = run_retention_job(db, clock=clock)

        assert result.notifications_sent == 1
        assert get_event(db, event_id).retention_notification_sent is True

    def test_warns_then_archives_on_next_run(self, db, clock, make_event):
        event_id = make_event(state="COMPLETED", **PAST_RETENTION)

        first = run_retention_job(db, clock=clock)
        assert first.notifications_sent == 1
        assert first.events_archived == 0
        assert get_event(db, event_id).archived_at is None

        second = run_retention_job(db, clock=clock)
        assert second.notifications_sent == 0
        assert second.events_archived == 1
        assert get_event(db, event_id).archived_at is not None

        third = run_retention_job(db, clock=clock)
        assert (third.notifications_sent, third.events_archived) == (0, 0)

    def test_warned_event_archives_once_its_date_arrives(self, db, clock, make_event):
        event_id = make_event(state="COMPLETED", **IN_WINDOW)

        first = run_retention_job(db, clock=clock)
        assert first.notifications_sent == 1
        assert first.events_archived == 0

        # 2026-02-21, one day past the archival date
        clock.advance(timedelta(days=20))
        second = run_retention_job(db, clock=clock)
        assert second.notifications_sent == 0
        assert second.events_archived == 1
        assert get_event(db, event_id).archived_at is not None

    def test_rerun_creates_no_duplicates(self, db, clock, make_event):
        event_id = make_event(state="COMPLETED", **IN_WINDOW)
        db.add(EventRole(event_id=event_id, user_id=uuid.uuid4()))
        db.commit()

        first = run_retention_job(db, clock=clock)
        second = run_retention_job(db, clock=clock)

        assert first.organizers_notified == 2
        assert second.success is True
        assert second.notifications_sent == 0
        assert db.query(Notification).filter(Notification.event_id == event_id).count() == 2
        assert (
            db.query(EventLifecycleEvent)
            .filter(
                EventLifecycleEvent.event_id == event_id,
                EventLifecycleEvent.event_type == LifecycleEventType.RETENTION_NOTIFIED.value,
            )
            .count()
            == 1
        )

    def test_deletes_due_events(self, db, clock, make_event):
        due = make_event(scheduled_for_deletion_at=NOW - timedelta(seconds=1))
        pending = make_event(scheduled_for_deletion_at=NOW + timedelta(days=1))

        result = run_retention_job(db, clock=clock)

        assert result.events_deleted == 1
        assert get_event(db, due) is None
        assert get_event(db, pending) is not None

    def test_sweeps_expired_wall_posts(self, db, clock, make_event):
        event_id = make_event(wall_retention_months=6, **IN_WINDOW)
        db.add(WallPost(event_id=event_id, author_id=uuid.uuid4(), created_at=datetime(2025, 1, 1, tzinfo=UTC)))
        db.add(WallPost(event_id=event_id, author_id=uuid.uuid4(), created_at=datetime(2026, 1, 15, tzinfo=UTC)))
        db.commit()

        result = run_retention_job(db, clock=clock)

        assert result.wall_posts_deleted == 1
        assert db.query(WallPost).filter(WallPost.event_id == event_id).count() == 1

    def test_sweeps_archived_events_too(self, db, clock, make_event):
        event_id = make_event(
            state="COMPLETED",
            archived_at=NOW - timedelta(days=10),
            wall_retention_months=1,
            **PAST_RETENTION,
        )
        db.add(WallPost(event_id=event_id, author_id=uuid.uuid4(), created_at=datetime(2023, 6, 1, tzinfo=UTC)))
        db.commit()

        result = run_retention_job(db, clock=clock)

        assert result.wall_posts_deleted == 1

    def test_dry_run_writes_nothing(self, db, clock, make_event):
        event_id = make_event(**IN_WINDOW)
        due = make_event(scheduled_for_deletion_at=NOW - timedelta(days=1))

        result = run_retention_job(db, clock=clock, dry_run=True)

        assert result.dry_run is True
        assert result.states_synced == 1
        assert result.notifications_sent == 1
        assert result.events_deleted == 1

        assert get_event(db, event_id).state == "PUBLISHED"
        assert get_event(db, event_id).retention_notification_sent is False
        assert get_event(db, due) is not None
        assert db.query(Notification).count() == 0
        assert db.query(EventLifecycleEvent).count() == 0

    def test_failure_is_recorded_and_run_continues(self, db, clock, make_event):
        failing = make_event(state="COMPLETED", **IN_WINDOW)
        due = make_event(scheduled_for_deletion_at=NOW - timedelta(days=1))

        with patch.object(RetentionExecutor, "notify_organizers", side_effect=RuntimeError("mail queue down")):
            result = run_retention_job(db, clock=clock)

        assert result.success is False
        assert result.errors == [{"event_id": str(failing), "error": "mail queue down"}]
        assert result.events_deleted == 1
        assert get_event(db, due) is None

        # Failed event is picked up by the next run
        retry = run_retention_job(db, clock=clock)
        assert retry.success is True
        assert retry.notifications_sent == 1

    def test_events_not_due_do_not_block_later_ones(self, db, clock, make_event):
        # Oldest candidates first, none of them actionable yet
        make_event(
            state="COMPLETED",
            data_retention_months=120,
            retention_notification_sent=True,
            start_at=datetime(2023, 1, 1, 18, 0, tzinfo=UTC),
            end_at=datetime(2023, 1, 1, 21, 0, tzinfo=UTC),
        )
        make_event(
            scheduled_for_deletion_at=NOW + timedelta(days=10),
            start_at=datetime(2023, 2, 1, 18, 0, tzinfo=UTC),
            end_at=datetime(2023, 2, 1, 21, 0, tzinfo=UTC),
        )
        make_event(
            wall_retention_months=6,
            start_at=datetime(2023, 3, 1, 18, 0, tzinfo=UTC),
            end_at=datetime(2023, 3, 1, 21, 0, tzinfo=UTC),
        )
        archivable = make_event(state="COMPLETED", retention_notification_sent=True, **PAST_RETENTION)
        deletable = make_event(scheduled_for_deletion_at=NOW - timedelta(days=1))
        swept = make_event(wall_retention_months=6, **IN_WINDOW)
        db.add(WallPost(event_id=swept, author_id=uuid.uuid4(), created_at=datetime(2025, 1, 1, tzinfo=UTC)))
        db.commit()

        result = run_retention_job(db, clock=clock, batch_size=1)

        assert result.success is True
        assert result.events_archived == 1
        assert result.events_deleted == 1
        assert result.wall_posts_deleted == 1
        assert get_event(db, archivable).archived_at is not None
        assert get_event(db, deletable) is None

    def test_unrepresentable_retention_does_not_abort_run(self, db, clock, make_event):
        endless = make_event(state="COMPLETED", data_retention_months=10**6, **PAST_RETENTION)
        huge_wall = make_event(wall_retention_months=10**5, **IN_WINDOW)
        db.add(WallPost(event_id=huge_wall, author_id=uuid.uuid4(), created_at=datetime(2001, 1, 1, tzinfo=UTC)))
        due = make_event(scheduled_for_deletion_at=NOW - timedelta(days=1))
        db.commit()

        result = run_retention_job(db, clock=clock)

        assert result.success is True
        assert result.events_deleted == 1
        assert result.wall_posts_deleted == 0
        assert get_event(db, endless).archived_at is None
        assert get_event(db, endless).retention_notification_sent is False
        assert get_event(db, due) is None

    def test_empty_database(self, db, clock):
        result = run_retention_job(db, clock=clock)

        assert result.success is True
        assert result.errors == []
        assert result.states_synced == 0


class TestSyncEventStates:
    """Tests for sync_event_states()."""

    def test_sync_only(self, db, clock, make_event):
        event_id = make_event(state="PUBLISHED", **PAST_RETENTION)
        draft = make_event(state="DRAFT", **PAST_RETENTION)

        result = sync_event_states(db, clock=clock)

        assert result.states_synced == 1
        assert get_event(db, event_id).state == "COMPLETED"
        assert get_event(db, event_id).retention_notification_sent is False
        assert get_event(db, draft).state == "DRAFT"


class TestPreviewRetention:
    """Tests for preview_retention()."""

    def test_lists_pending_work(self, db, clock, make_event):
        to_notify = make_event(**IN_WINDOW)
        to_archive = make_event(
            state="COMPLETED",
            retention_notification_sent=True,
            **PAST_RETENTION,
        )
        to_delete = make_event(scheduled_for_deletion_at=NOW - timedelta(days=1))

        preview = preview_retention(db, clock=clock)

        assert preview["would_sync"] == 1
        assert preview["would_notify"] == [str(to_notify)]
        assert preview["would_archive"] == [str(to_archive)]
        assert preview["would_delete"] == [str(to_delete)]
        assert preview["would_delete_wall_posts"] == 0

        # Nothing written
        assert get_event(db, to_notify).state == "PUBLISHED"
