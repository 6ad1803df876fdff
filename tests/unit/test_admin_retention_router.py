# tests/unit/test_admin_retention_router.py
"""Tests for admin retention endpoints."""

from datetime import UTC, datetime, timedelta

from eventkeeper.models import Event

NOW = datetime(2026, 2, 1, 12, 0, tzinfo=UTC)
ADMIN_HEADERS = {"X-API-Key": "test-admin-key"}
ENDED = {
    "start_at": datetime(2024, 2, 20, 18, 0, tzinfo=UTC),
    "end_at": datetime(2024, 2, 20, 21, 0, tzinfo=UTC),
}


class TestAdminAuth:
    """All admin retention endpoints require X-API-Key."""

    def test_missing_key(self, client):
        assert client.get("/v1/admin/retention/preview").status_code == 401

    def test_wrong_key(self, client):
        response = client.post(
            "/v1/admin/retention/run",
            json={"dry_run": True},
            headers={"X-API-Key": "wrong"},
        )
        assert response.status_code == 401


class TestPreview:
    def test_preview(self, client, make_event):
        event_id = make_event(**ENDED)

        response = client.get("/v1/admin/retention/preview", headers=ADMIN_HEADERS)
        assert response.status_code == 200

        data = response.json()
        assert data["would_sync"] == 1
        assert data["would_notify"] == [str(event_id)]
        assert data["would_archive"] == []
        assert data["would_delete"] == []


class TestRun:
    """POST /v1/admin/retention/run"""

    def test_requires_confirm(self, client):
        response = client.post("/v1/admin/retention/run", json={}, headers=ADMIN_HEADERS)
        assert response.status_code == 400
        assert "confirm" in response.json()["detail"]

    def test_dry_run_without_confirm(self, client, db, make_event):
        due = make_event(scheduled_for_deletion_at=NOW - timedelta(days=1))

        response = client.post("/v1/admin/retention/run", json={"dry_run": True}, headers=ADMIN_HEADERS)
        assert response.status_code == 200

        data = response.json()
        assert data["dry_run"] is True
        assert data["events_deleted"] == 1
        assert db.query(Event).filter(Event.id == due).first() is not None

    def test_confirmed_run(self, client, db, make_event):
        ended = make_event(**ENDED)
        due = make_event(scheduled_for_deletion_at=NOW - timedelta(days=1))

        response = client.post("/v1/admin/retention/run", json={"confirm": True}, headers=ADMIN_HEADERS)
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["states_synced"] == 1
        assert data["notifications_sent"] == 1
        assert data["events_deleted"] == 1
        assert data["errors"] == []
        assert db.query(Event).filter(Event.id == due).first() is None
        assert db.query(Event).filter(Event.id == ended).first().state == "COMPLETED"

    def test_batch_size_validated(self, client):
        response = client.post(
            "/v1/admin/retention/run",
            json={"dry_run": True, "batch_size": 0},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 422


class TestSyncStates:
    def test_sync_states(self, client, db, make_event):
        event_id = make_event(**ENDED)

        response = client.post("/v1/admin/retention/sync-states", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["states_synced"] == 1
        assert response.json()["notifications_sent"] == 0
        assert db.query(Event).filter(Event.id == event_id).first().state == "COMPLETED"
