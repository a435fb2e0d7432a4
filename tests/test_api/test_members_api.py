"""
Tests for the member API.

These tests drive the FastAPI app through TestClient with an in-memory
service and a synchronous bus, so the welcome email has been handled by
the time each request returns.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from members.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(notify_async=False, default_page_size=3)


@pytest.fixture
def api_client(store, event_bus, email_channel, settings):
    """Test client over fresh fixtures; the lifespan starts the listener."""
    from members.service import MemberService
    from notifications.email_listener import MemberEmailListener

    service = MemberService(store, event_bus)
    listener = MemberEmailListener(event_bus, email_channel)
    app = create_app(service=service, listener=listener, settings=settings)
    with TestClient(app) as client:
        yield client


def _post(client: TestClient, email: str = "a@x.com", name: str = "A", phone: str = "010-1234-5678"):
    return client.post("/v1/members", json={"email": email, "name": name, "phone": phone})


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestPostMember:
    """Tests for POST /v1/members."""

    def test_create(self, api_client, email_channel):
        response = _post(api_client)

        assert response.status_code == 201
        data = response.json()
        assert data["member_id"] == 1
        assert data["member_status"] == "MEMBER_ACTIVE"
        assert data["status_label"] == "active"
        assert email_channel.find_message_to("a@x.com") is not None

    def test_duplicate_email(self, api_client):
        _post(api_client)

        response = _post(api_client, name="B")

        assert response.status_code == 409
        assert response.json() == {
            "status": 409,
            "code": "MEMBER_EXISTS",
            "message": "Member exists: a@x.com",
        }

    @pytest.mark.parametrize("body", [
        {"email": "not-an-email", "name": "A", "phone": "010-1234-5678"},
        {"email": "a@x.com", "name": "   ", "phone": "010-1234-5678"},
        {"email": "a@x.com", "name": "A", "phone": "call me"},
        {"email": "a@x.com", "name": "A"},
    ])
    def test_invalid_body(self, api_client, store, body):
        response = api_client.post("/v1/members", json=body)

        assert response.status_code == 422
        assert store.count() == 0


class TestPatchMember:
    """Tests for PATCH /v1/members/{member_id}."""

    def test_partial_update(self, api_client):
        _post(api_client)

        response = api_client.patch("/v1/members/1", json={"phone": "010-5555-5555"})

        assert response.status_code == 200
        data = response.json()
        assert data["phone"] == "010-5555-5555"
        assert data["name"] == "A"

    def test_status_change(self, api_client):
        _post(api_client)

        response = api_client.patch("/v1/members/1", json={"member_status": "MEMBER_SLEEP"})

        assert response.json()["status_label"] == "dormant"

    def test_explicit_null_keeps_value(self, api_client):
        _post(api_client)

        response = api_client.patch("/v1/members/1", json={"name": None})

        assert response.status_code == 200
        assert response.json()["name"] == "A"

    def test_email_cannot_be_patched(self, api_client):
        _post(api_client)

        response = api_client.patch("/v1/members/1", json={"email": "b@x.com"})

        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"

    def test_unknown_status_rejected(self, api_client):
        _post(api_client)

        response = api_client.patch("/v1/members/1", json={"member_status": "MEMBER_GONE"})

        assert response.status_code == 422

    def test_missing_member(self, api_client):
        response = api_client.patch("/v1/members/42", json={"name": "B"})

        assert response.status_code == 404
        assert response.json()["code"] == "MEMBER_NOT_FOUND"


class TestGetMembers:
    """Tests for GET /v1/members and GET /v1/members/{member_id}."""

    def test_get_one(self, api_client):
        _post(api_client)

        response = api_client.get("/v1/members/1")

        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"

    def test_get_missing(self, api_client):
        response = api_client.get("/v1/members/1")

        assert response.status_code == 404
        assert response.json()["status"] == 404

    def test_list_is_one_based_and_newest_first(self, api_client):
        for i in range(1, 6):
            _post(api_client, email=f"user{i}@x.com", name=f"User {i}")

        response = api_client.get("/v1/members", params={"page": 1, "size": 2})

        data = response.json()
        assert [m["member_id"] for m in data["data"]] == [5, 4]
        assert data["page_info"] == {
            "page": 1,
            "size": 2,
            "total_elements": 5,
            "total_pages": 3,
        }

    def test_list_last_page(self, api_client):
        for i in range(1, 6):
            _post(api_client, email=f"user{i}@x.com", name=f"User {i}")

        response = api_client.get("/v1/members", params={"page": 3, "size": 2})

        assert [m["member_id"] for m in response.json()["data"]] == [1]

    def test_list_uses_default_size(self, api_client):
        for i in range(1, 6):
            _post(api_client, email=f"user{i}@x.com", name=f"User {i}")

        response = api_client.get("/v1/members")

        assert response.json()["page_info"]["size"] == 3
        assert len(response.json()["data"]) == 3

    def test_list_past_the_end(self, api_client):
        response = api_client.get("/v1/members", params={"page": 4})

        assert response.status_code == 200
        assert response.json()["data"] == []

    @pytest.mark.parametrize("params", [{"page": 0}, {"size": 0}])
    def test_list_invalid_paging(self, api_client, params):
        response = api_client.get("/v1/members", params=params)

        assert response.status_code == 422


class TestDeleteMember:
    """Tests for DELETE /v1/members/{member_id}."""

    def test_delete(self, api_client):
        _post(api_client)

        response = api_client.delete("/v1/members/1")

        assert response.status_code == 204
        assert api_client.get("/v1/members/1").status_code == 404

    def test_delete_missing(self, api_client):
        response = api_client.delete("/v1/members/1")

        assert response.status_code == 404


class TestDefaultApp:
    """The app built with no arguments."""

    def test_import_builds_nothing(self):
        from api.main import app

        assert app.state.member_service is None
        assert app.state.email_listener is None

    def test_stack_is_wired_at_startup(self):
        app = create_app(settings=Settings(notify_async=False))

        with TestClient(app) as client:
            response = _post(client)
            assert response.status_code == 201
            assert app.state.member_service.store.count() == 1
            assert app.state.email_listener is not None
