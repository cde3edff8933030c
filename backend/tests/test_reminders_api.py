"""
Test reminder endpoints
"""

import pytest

from kennelmate.config import settings
from kennelmate import dependencies

USER = {"X-User-Id": "user_test", "X-Session-Id": "session_1"}


@pytest.fixture
def seeded_client(client, store_factory, kennel_snapshot):
    store_factory.seed_snapshot("user_test", kennel_snapshot)
    return client


def list_reminders(client, headers=USER):
    response = client.get("/api/v1/reminders", params={"today": "2024-06-15"}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["services"]["stores"] in ("memory", "dynamodb")


def test_root_endpoint(client):
    """Test root endpoint"""
    response = client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["service"] == "KennelMate API"
    assert data["docs"] == "/docs"


def test_missing_user_id_is_rejected(client):
    response = client.get("/api/v1/reminders")
    assert response.status_code == 401


def test_list_reminders(seeded_client):
    data = list_reminders(seeded_client)

    assert data["total"] == 6
    assert data["is_stale"] is False
    first = data["reminders"][0]
    assert first["type"] == "heat"
    assert first["priority"] == "high"
    assert first["due_date"] == "2024-06-20"
    assert first["is_completed"] is False


def test_create_custom_reminder(seeded_client):
    response = seeded_client.post(
        "/api/v1/reminders",
        json={"title": "Order puppy food", "due_date": "2024-06-17", "priority": "high"},
        headers=USER,
    )

    assert response.status_code == 201
    created = response.json()
    assert created["id"].startswith("custom-")
    assert created["type"] == "custom"

    data = list_reminders(seeded_client)
    custom = next(r for r in data["reminders"] if r["id"] == created["id"])
    assert custom["source"] == "custom"


def test_create_reminder_validation(client):
    response = client.post(
        "/api/v1/reminders",
        json={"title": "", "due_date": "2024-06-17"},
        headers=USER,
    )
    assert response.status_code == 422


def test_complete_and_reopen(seeded_client):
    reminder_id = list_reminders(seeded_client)["reminders"][0]["id"]

    response = seeded_client.put(
        f"/api/v1/reminders/{reminder_id}/status",
        json={"is_completed": True},
        headers=USER,
    )
    assert response.status_code == 200
    assert response.json() == {"reminder_id": reminder_id, "is_completed": True, "is_deleted": False}

    reminders = list_reminders(seeded_client)["reminders"]
    assert reminders[-1]["id"] == reminder_id
    assert reminders[-1]["is_completed"] is True

    seeded_client.put(f"/api/v1/reminders/{reminder_id}/status", json={"is_completed": False}, headers=USER)
    assert list_reminders(seeded_client)["reminders"][0]["id"] == reminder_id


def test_delete_system_reminder(seeded_client):
    reminder_id = list_reminders(seeded_client)["reminders"][0]["id"]

    response = seeded_client.delete(f"/api/v1/reminders/{reminder_id}", headers=USER)
    assert response.status_code == 204

    data = list_reminders(seeded_client)
    assert data["total"] == 5
    assert reminder_id not in [r["id"] for r in data["reminders"]]


def test_delete_custom_reminder(seeded_client):
    created = seeded_client.post(
        "/api/v1/reminders",
        json={"title": "Vet bill", "due_date": "2024-06-18"},
        headers=USER,
    ).json()

    response = seeded_client.delete(f"/api/v1/reminders/{created['id']}", headers=USER)
    assert response.status_code == 204
    assert list_reminders(seeded_client)["total"] == 6


def test_users_are_isolated(seeded_client):
    seeded_client.post(
        "/api/v1/reminders",
        json={"title": "Private note", "due_date": "2024-06-18"},
        headers=USER,
    )

    other = list_reminders(seeded_client, headers={"X-User-Id": "user_other"})
    assert other["total"] == 0


def test_migration_on_first_list(client, legacy_source, legacy_document):
    legacy_source.document = legacy_document

    data = list_reminders(client)
    ids = [r["id"] for r in data["reminders"]]
    assert "custom-1717000000000" in ids

    status = client.get("/api/v1/reminders/migration", headers=USER).json()
    assert status == {"migrated": True, "failed_attempts": 0, "session_state": "complete"}


def test_run_migration_endpoint(client, legacy_source, legacy_document):
    legacy_source.document = legacy_document

    response = client.post("/api/v1/reminders/migration", headers=USER)

    assert response.status_code == 200
    result = response.json()
    assert result["state"] == "complete"
    assert result["migrated_reminders"] == 2
    assert result["orphaned_status_ids"] == ["heat-dog_luna-1718000000000"]


def test_session_contexts_are_bounded(client, monkeypatch):
    monkeypatch.setattr(settings, "MIGRATION_SESSION_CACHE_SIZE", 3)

    for n in range(5):
        list_reminders(client, headers={"X-User-Id": "user_test", "X-Session-Id": f"session_{n}"})
    list_reminders(client, headers={"X-User-Id": "user_test", "X-Session-Id": "session_2"})
    list_reminders(client, headers={"X-User-Id": "user_test", "X-Session-Id": "session_5"})

    retained = [session for _, session in dependencies._migration_contexts]
    assert retained == ["session_4", "session_2", "session_5"]


def test_reminders_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_REMINDERS", False)

    response = client.get("/api/v1/reminders", headers=USER)
    assert response.status_code == 503


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
