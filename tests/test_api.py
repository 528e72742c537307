"""End-to-end tests for the HTTP API against an in-memory database."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import API_KEY, FOTOCASA_ITEM, IDEALISTA_ITEM, make_settings
from api.app import create_app
from core.db import create_db_engine

ADMIN = {"X-API-Key": API_KEY}


def _client(**overrides) -> TestClient:
    settings = make_settings(**overrides)
    engine = create_db_engine("sqlite:///:memory:", settings=settings)
    return TestClient(create_app(settings, engine=engine))


@pytest.fixture
def client():
    with _client() as test_client:
        yield test_client


def _agent(user_id: str = "agent-1", email: str = None) -> dict:
    headers = {"X-User-Id": user_id}
    if email:
        headers["X-User-Email"] = email
    return headers


def _create_list(client: TestClient, name: str = "Particulares Madrid", location: str = "Madrid") -> dict:
    response = client.post("/admin/lists", json={"name": name, "location": location}, headers=ADMIN)
    assert response.status_code == 201
    return response.json()


def _subscribe(client: TestClient, list_id: str, user_id: str = "agent-1", status: str = "active") -> None:
    response = client.put(
        "/admin/subscriptions",
        json={"user_id": user_id, "list_id": list_id, "status": status, "email": f"{user_id}@example.com"},
        headers=ADMIN,
    )
    assert response.status_code == 200


def _upload(client: TestClient, list_id: str, properties: list) -> dict:
    response = client.post(f"/admin/lists/{list_id}/upload", json={"properties": properties}, headers=ADMIN)
    assert response.status_code == 200
    return response.json()


# =============================================================================
# Health
# =============================================================================


class TestHealth:
    def test_basic(self, client):
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["dry_run"] is True

    def test_detailed_reports_tables(self, client):
        data = client.get("/health/detailed").json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["tables_missing"] == []
        assert data["checks"]["automation_api"]["configured"] is True


# =============================================================================
# Authentication
# =============================================================================


class TestApiKey:
    def test_missing_key(self, client):
        assert client.get("/admin/lists").status_code == 401

    def test_wrong_key(self, client):
        assert client.get("/admin/lists", headers={"X-API-Key": "nope"}).status_code == 401

    def test_unconfigured_key_is_a_server_error(self):
        with _client(API_AUTOMATION_KEY=None) as client:
            response = client.post("/automation/upload", json={"properties": [{"price": 1}]}, headers=ADMIN)

        assert response.status_code == 500
        assert response.json() == {"error": "configuration_error", "message": "Service misconfiguration"}

    def test_agent_routes_need_user_id(self, client):
        property_list = _create_list(client)
        assert client.get(f"/lists/{property_list['id']}/properties").status_code == 401


# =============================================================================
# Automation upload
# =============================================================================


class TestAutomationUpload:
    def test_fotocasa_creates_list(self, client):
        payload = {"ubicacion": "Igualada", "viviendas": [FOTOCASA_ITEM]}

        response = client.post("/automation/upload?createIfNotExists=true", json=payload, headers=ADMIN)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["list_created"] is True
        assert data["format"] == "fotocasa"
        assert data["stats"] == {"total": 1, "new": 1, "updated": 0, "duplicates": 0, "errors": 0}

        lists = client.get("/admin/lists", headers=ADMIN).json()
        assert [(item["name"], item["total_properties"]) for item in lists] == [("Igualada", 1)]

    def test_repeat_upload_is_duplicate(self, client):
        payload = {"ubicacion": "Igualada", "viviendas": [FOTOCASA_ITEM]}
        client.post("/automation/upload?createIfNotExists=true", json=payload, headers=ADMIN)

        data = client.post("/automation/upload?createIfNotExists=true", json=payload, headers=ADMIN).json()

        assert data["list_created"] is False
        assert data["stats"]["duplicates"] == 1

    def test_missing_list_without_create(self, client):
        payload = {"listName": "Nueva", "location": "Sevilla", "viviendas": {"todas": [IDEALISTA_ITEM]}}

        response = client.post("/automation/upload", json=payload, headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_empty_payload(self, client):
        property_list = _create_list(client)

        response = client.post(
            "/automation/upload", json={"listId": property_list["id"], "properties": []}, headers=ADMIN
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


# =============================================================================
# Admin
# =============================================================================


class TestAdminLists:
    def test_create_update_delete(self, client):
        property_list = _create_list(client)
        list_id = property_list["id"]
        assert property_list["currency"] == "EUR"

        updated = client.patch(f"/admin/lists/{list_id}", json={"name": "Madrid Centro"}, headers=ADMIN)
        assert updated.json()["name"] == "Madrid Centro"
        assert updated.json()["location"] == "Madrid"

        assert client.delete(f"/admin/lists/{list_id}", headers=ADMIN).json() == {"deleted": True, "list_id": list_id}
        assert client.get(f"/admin/lists/{list_id}", headers=ADMIN).status_code == 404

    def test_blank_name_is_rejected(self, client):
        response = client.post("/admin/lists", json={"name": "   ", "location": "Madrid"}, headers=ADMIN)
        assert response.status_code == 400

    def test_upload_properties_and_updates(self, client):
        list_id = _create_list(client)["id"]

        first = _upload(client, list_id, [
            {"price": 100000, "sourceUrl": "https://example.com/1"},
            {"price": 200000, "sourceUrl": "https://example.com/2"},
        ])
        second = _upload(client, list_id, [
            {"price": 110000, "sourceUrl": "https://example.com/1"},
            {"price": 200000, "sourceUrl": "https://example.com/2"},
        ])

        assert first["stats"]["new"] == 2
        assert second["stats"]["updated"] == 1
        assert second["stats"]["duplicates"] == 1

        page = client.get(f"/admin/lists/{list_id}/properties", headers=ADMIN).json()
        assert page["total"] == 2
        assert sorted(item["price"] for item in page["data"]) == [110000, 200000]

        details = client.get(f"/admin/lists/{list_id}", headers=ADMIN).json()
        assert details["price_cents"] == 400

        updates = client.get(f"/admin/lists/{list_id}/updates", headers=ADMIN).json()
        assert sorted((u["added_count"], u["updated_count"]) for u in updates) == [(0, 1), (2, 0)]

    def test_delete_properties(self, client):
        list_id = _create_list(client)["id"]
        _upload(client, list_id, [
            {"price": 100000, "sourceUrl": "https://example.com/1"},
            {"price": 200000, "sourceUrl": "https://example.com/2"},
        ])
        property_id = client.get(f"/admin/lists/{list_id}/properties", headers=ADMIN).json()["data"][0]["id"]

        assert client.delete(f"/admin/lists/{list_id}/properties/{property_id}", headers=ADMIN).status_code == 200
        assert client.delete(f"/admin/lists/{list_id}/properties/{property_id}", headers=ADMIN).status_code == 404

        remaining = client.delete(f"/admin/lists/{list_id}/properties", headers=ADMIN).json()
        assert remaining == {"deleted": 1, "list_id": list_id}

    def test_upload_to_unknown_list(self, client):
        response = client.post("/admin/lists/missing/upload", json={"properties": [{"price": 1}]}, headers=ADMIN)
        assert response.status_code == 404


# =============================================================================
# List requests
# =============================================================================


class TestListRequests:
    def test_request_then_approve(self, client):
        created = client.post(
            "/list-requests",
            json={"location": "Valencia", "notes": "Zona centro"},
            headers=_agent(email="agent-1@example.com"),
        )
        assert created.status_code == 201
        request_id = created.json()["id"]

        pending = client.get("/admin/list-requests?status=pending", headers=ADMIN).json()
        assert [r["id"] for r in pending] == [request_id]

        approved = client.post(f"/admin/list-requests/{request_id}/approve", headers=ADMIN).json()
        assert approved["request"]["status"] == "approved"
        assert approved["list"]["name"] == "Valencia"

        mine = client.get("/list-requests", headers=_agent()).json()
        assert mine[0]["created_list_id"] == approved["list"]["id"]

    def test_reject_and_conflict(self, client):
        request_id = client.post("/list-requests", json={"location": "Bilbao"}, headers=_agent()).json()["id"]

        rejected = client.post(f"/admin/list-requests/{request_id}/reject", headers=ADMIN)
        again = client.post(f"/admin/list-requests/{request_id}/approve", headers=ADMIN)

        assert rejected.json()["request"]["status"] == "rejected"
        assert again.status_code == 409
        assert again.json()["error"] == "conflict"

    def test_unknown_request(self, client):
        assert client.post("/admin/list-requests/missing/reject", headers=ADMIN).status_code == 404


# =============================================================================
# Agent views
# =============================================================================


class TestAgentProperties:
    def _setup(self, client) -> tuple:
        list_id = _create_list(client)["id"]
        _upload(client, list_id, [
            {"price": 100000 + i, "sourceUrl": f"https://example.com/{i}"} for i in range(3)
        ])
        return list_id

    def test_requires_subscription(self, client):
        list_id = self._setup(client)

        response = client.get(f"/lists/{list_id}/properties", headers=_agent())

        assert response.status_code == 403

    def test_canceled_subscription_is_forbidden(self, client):
        list_id = self._setup(client)
        _subscribe(client, list_id, status="canceled")

        assert client.get(f"/lists/{list_id}/properties", headers=_agent()).status_code == 403

    def test_unknown_list(self, client):
        assert client.get("/lists/missing/properties", headers=_agent()).status_code == 404

    def test_browse_and_track_state(self, client):
        list_id = self._setup(client)
        _subscribe(client, list_id)

        page = client.get(f"/lists/{list_id}/properties", headers=_agent()).json()
        assert page["total"] == 3
        assert all(item["state"] == "new" for item in page["data"])
        property_id = page["data"][0]["id"]

        state = client.patch(
            f"/lists/{list_id}/properties/{property_id}/state", json={"state": "contacted"}, headers=_agent()
        )
        comment = client.patch(
            f"/lists/{list_id}/properties/{property_id}/comment", json={"comment": "Llamar mañana"}, headers=_agent()
        )

        assert state.json()["state"] == "contacted"
        assert comment.json() == {
            "property_id": property_id,
            "state": "contacted",
            "comment": "Llamar mañana",
            "updated_at": comment.json()["updated_at"],
        }

        contacted = client.get(
            f"/lists/{list_id}/properties?state=contacted", headers=_agent()
        ).json()
        assert [item["id"] for item in contacted["data"]] == [property_id]
        assert contacted["data"][0]["comment"] == "Llamar mañana"

    def test_state_is_private_per_agent(self, client):
        list_id = self._setup(client)
        _subscribe(client, list_id)
        _subscribe(client, list_id, user_id="agent-2")
        property_id = client.get(f"/lists/{list_id}/properties", headers=_agent()).json()["data"][0]["id"]

        client.patch(f"/lists/{list_id}/properties/{property_id}/state", json={"state": "rejected"}, headers=_agent())

        other = client.get(f"/lists/{list_id}/properties", headers=_agent("agent-2")).json()
        assert {item["id"]: item["state"] for item in other["data"]}[property_id] == "new"

    def test_invalid_state(self, client):
        list_id = self._setup(client)
        _subscribe(client, list_id)
        property_id = client.get(f"/lists/{list_id}/properties", headers=_agent()).json()["data"][0]["id"]

        response = client.patch(
            f"/lists/{list_id}/properties/{property_id}/state", json={"state": "sold"}, headers=_agent()
        )

        assert response.status_code == 400

    def test_property_from_another_list(self, client):
        list_id = self._setup(client)
        other_id = _create_list(client, "Particulares Bilbao", "Bilbao")["id"]
        _upload(client, other_id, [{"price": 90000, "sourceUrl": "https://example.com/bilbao"}])
        _subscribe(client, list_id)
        foreign_id = client.get(f"/admin/lists/{other_id}/properties", headers=ADMIN).json()["data"][0]["id"]

        response = client.patch(
            f"/lists/{list_id}/properties/{foreign_id}/state", json={"state": "contacted"}, headers=_agent()
        )

        assert response.status_code == 404

    def test_cursor_pagination(self, client):
        list_id = self._setup(client)
        _subscribe(client, list_id)

        first = client.get(f"/lists/{list_id}/properties?limit=2", headers=_agent()).json()
        second = client.get(
            f"/lists/{list_id}/properties", params={"limit": 2, "cursor": first["cursor"]}, headers=_agent()
        ).json()

        assert first["has_more"] is True
        assert len(first["data"]) == 2
        assert second["has_more"] is False
        seen = [item["id"] for item in first["data"] + second["data"]]
        assert len(set(seen)) == 3


# =============================================================================
# Settings injection
# =============================================================================


class TestAppSettings:
    """Routes hand the app's settings to services instead of the global ones."""

    @pytest.fixture
    def isolated_client(self, monkeypatch):
        def _global_settings():
            raise AssertionError("global settings read during a request")

        for module in (
            "domain.agent_state",
            "domain.ingestion",
            "domain.list_requests",
            "domain.lists",
            "domain.properties",
            "services.notification",
        ):
            monkeypatch.setattr(f"{module}.get_settings", _global_settings)

        with _client() as test_client:
            yield test_client

    def test_admin_and_agent_routes(self, isolated_client):
        client = isolated_client
        list_id = _create_list(client)["id"]
        _upload(client, list_id, [{"price": 100000, "sourceUrl": "https://example.com/1"}])
        _subscribe(client, list_id)

        assert client.get("/admin/lists", headers=ADMIN).status_code == 200
        assert client.get(f"/admin/lists/{list_id}", headers=ADMIN).status_code == 200
        assert client.get(f"/admin/lists/{list_id}/updates", headers=ADMIN).status_code == 200

        page = client.get(f"/lists/{list_id}/properties", headers=_agent())
        assert page.status_code == 200
        property_id = page.json()["data"][0]["id"]

        state = client.patch(
            f"/lists/{list_id}/properties/{property_id}/state", json={"state": "captured"}, headers=_agent()
        )
        assert state.status_code == 200
        assert state.json()["state"] == "captured"

        assert client.delete(f"/admin/lists/{list_id}", headers=ADMIN).status_code == 200

    def test_list_request_routes(self, isolated_client):
        client = isolated_client
        created = client.post("/list-requests", json={"location": "Sevilla"}, headers=_agent())
        assert created.status_code == 201

        assert client.get("/list-requests", headers=_agent()).status_code == 200
        assert client.get("/admin/list-requests", headers=ADMIN).status_code == 200


# =============================================================================
# Database failures
# =============================================================================


class TestDatabaseUnavailable:
    def test_unreachable_database_is_503(self, tmp_path):
        settings = make_settings()
        engine = create_db_engine(f"sqlite:///{(tmp_path / 'missing' / 'api.db').as_posix()}", settings=settings)

        with TestClient(create_app(settings, engine=engine)) as client:
            response = client.get("/admin/lists", headers=ADMIN)

        assert response.status_code == 503
        assert response.json() == {"error": "database_unavailable", "message": "Database unavailable"}
