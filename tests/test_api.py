"""Tests for the HTTP API: catalog, quotes and admin review endpoints."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeIdentityProvider, FakeRecordStore, make_session, provider_error

from studio.app import create_app
from studio.booking import SERVICE_REQUESTS_TABLE
from studio.providers import get_identity_provider, get_record_store
from studio.service_requests import USER_ROLES_TABLE

ADMIN = {"Authorization": "Bearer token-boss"}


@pytest.fixture
def api_store():
    store = FakeRecordStore()
    store.tables[USER_ROLES_TABLE] = [{"user_id": "boss", "role": "admin"}]
    store.tables[SERVICE_REQUESTS_TABLE] = [
        {
            "id": "r-1", "user_id": "jane", "service_type": "Voice Dubbing",
            "full_name": "Jane Doe", "email": "jane@example.com", "phone": "+15551234567",
            "status": "pending", "created_at": "2026-01-01T10:00:00+00:00",
        },
        {
            "id": "r-2", "user_id": "jane", "service_type": "Mixing & Mastering",
            "full_name": "Jane Doe", "email": "jane@example.com", "phone": "+15551234567",
            "status": "completed", "created_at": "2026-02-01T10:00:00+00:00",
        },
    ]
    return store


@pytest.fixture
def api_provider():
    return FakeIdentityProvider(session=make_session("boss"))


@pytest.fixture
def client(api_store, api_provider):
    app = create_app()
    app.dependency_overrides[get_record_store] = lambda: api_store
    app.dependency_overrides[get_identity_provider] = lambda: api_provider
    return TestClient(app)


# ── Public endpoints ───────────────────────────────────────────────


class TestPublic:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_catalog(self, client):
        data = client.get("/api/catalog").json()
        assert {"id": "mixing-mastering", "name": "Mixing & Mastering", "price": 2000} in data["services"]
        assert len(data["add_ons"]) == 4
        assert data["time_slots"][0] == "09:00 AM"
        assert data["time_slots"][-1] == "08:00 PM"
        assert data["durations"] == [1, 2, 3, 4, 6, 8]

    def test_quote(self, client):
        resp = client.post("/api/quote", json={
            "service_id": "mixing-mastering",
            "duration_hours": 3,
            "add_on_ids": ["mastering", "video-shoot", "mastering"],
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["service_total"] == 6000
        assert data["add_on_total"] == 2500
        assert data["total"] == 8500

    def test_quote_empty_selection(self, client):
        data = client.post("/api/quote", json={}).json()
        assert data["total"] == 0
        assert data["hours"] == 1

    def test_quote_rejects_zero_hours(self, client):
        resp = client.post("/api/quote", json={"service_id": "voice-dubbing", "duration_hours": 0})
        assert resp.status_code == 422


# ── Admin endpoints ────────────────────────────────────────────────


class TestAdminEndpoints:
    def test_requires_token(self, client):
        assert client.get("/api/admin/service-requests").status_code == 401

    def test_rejects_invalid_token(self, client):
        resp = client.get("/api/admin/service-requests",
                          headers={"Authorization": "Bearer forged"})
        assert resp.status_code == 401

    def test_rejects_non_admin(self, client, api_provider):
        api_provider.session = make_session("jane")
        resp = client.get("/api/admin/service-requests",
                          headers={"Authorization": "Bearer token-jane"})
        assert resp.status_code == 403

    def test_list_newest_first(self, client):
        resp = client.get("/api/admin/service-requests", headers=ADMIN)
        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()] == ["r-2", "r-1"]

    def test_list_by_status(self, client):
        resp = client.get("/api/admin/service-requests?status=pending", headers=ADMIN)
        assert [r["id"] for r in resp.json()] == ["r-1"]

    def test_list_unknown_status(self, client):
        resp = client.get("/api/admin/service-requests?status=archived", headers=ADMIN)
        assert resp.status_code == 422

    def test_list_store_error(self, client, api_store):
        original_select = api_store.select

        async def failing_list(table, **kwargs):
            if table == SERVICE_REQUESTS_TABLE:
                return provider_error("relation does not exist", 404)
            return await original_select(table, **kwargs)

        api_store.select = failing_list
        resp = client.get("/api/admin/service-requests", headers=ADMIN)
        assert resp.status_code == 502
        assert resp.json()["detail"] == "relation does not exist"

    def test_update_status(self, client, api_store):
        resp = client.patch("/api/admin/service-requests/r-1",
                            json={"status": "in-progress"}, headers=ADMIN)
        assert resp.status_code == 200
        assert resp.json() == {"id": "r-1", "status": "in-progress"}
        assert api_store.tables[SERVICE_REQUESTS_TABLE][0]["status"] == "in-progress"

    def test_update_invalid_status(self, client, api_store):
        resp = client.patch("/api/admin/service-requests/r-1",
                            json={"status": "archived"}, headers=ADMIN)
        assert resp.status_code == 422
        assert api_store.tables[SERVICE_REQUESTS_TABLE][0]["status"] == "pending"

    def test_update_requires_admin(self, client):
        resp = client.patch("/api/admin/service-requests/r-1", json={"status": "completed"})
        assert resp.status_code == 401
