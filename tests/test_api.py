"""
API Tests for the HTTP surface
"""
import pytest
from fastapi.testclient import TestClient

from sedp.database import DatabaseManager
from sedp.main import create_app
from sedp.services.auth_service import AuthService

APPLICANT = {"X-User-Id": "user-1", "X-User-Email": "asha@example.com"}
OWNER = {"X-User-Id": "owner-1", "X-User-Email": "owner@example.com"}


@pytest.fixture
def app(tmp_path, bootstrap_token):
    app = create_app(DatabaseManager(f"sqlite:///{tmp_path / 'api.db'}"))
    app.state.sync_service.auth.bootstrap_token_hash = AuthService.hash_token(bootstrap_token)
    yield app
    app.state.db.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def owner(client, bootstrap_token):
    response = client.post("/api/auth/bootstrap", json={"token": bootstrap_token}, headers=OWNER)
    assert response.status_code == 200
    return OWNER


@pytest.fixture
def submitted(client, registration_fields):
    response = client.post("/api/registrations", json=registration_fields(), headers=APPLICANT)
    assert response.status_code == 201
    return response.json()["data"]["registration"]


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_anonymous_snapshot(client):
    body = client.get("/api/snapshot").json()

    assert body["user_id"] is None
    assert body["is_admin"] is False
    assert len(body["categories"]) == 7
    assert body["registrations"] == []


class TestRegistrationEndpoints:

    def test_submit_requires_sign_in(self, client, registration_fields):
        response = client.post("/api/registrations", json=registration_fields())

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert client.get("/api/snapshot", headers=OWNER).json()["registrations"] == []

    def test_submit(self, client, registration_fields):
        response = client.post("/api/registrations", json=registration_fields(), headers=APPLICANT)

        body = response.json()
        assert response.status_code == 201
        assert body["data"]["registration"]["status"] == "pending"
        assert body["data"]["registration"]["unique_id"] is None
        assert body["data"]["reference_preview"] == "ESP9876543210A"
        assert body["notices"][-1]["title"] == "Registration Submitted"

    def test_submit_invalid_mobile(self, client, registration_fields):
        response = client.post(
            "/api/registrations", json=registration_fields(mobile_number="1234567890"), headers=APPLICANT
        )
        assert response.status_code == 400

    def test_own_rows_listed(self, client, submitted):
        body = client.get("/api/registrations", headers=APPLICANT).json()
        assert [r["id"] for r in body["data"]] == [submitted["id"]]

        other = client.get("/api/registrations", headers={"X-User-Id": "user-2"}).json()
        assert other["data"] == []

    def test_non_admin_cannot_decide(self, client, submitted):
        response = client.patch(
            f"/api/registrations/{submitted['id']}/status", json={"status": "approved"}, headers=APPLICANT
        )
        assert response.status_code == 403

        status = client.get("/api/registrations/status", params={"query": "9876543210"}).json()
        assert status["data"]["registration"]["status"] == "pending"

    def test_approve_then_lookup(self, client, owner, submitted):
        response = client.patch(
            f"/api/registrations/{submitted['id']}/status", json={"status": "approved"}, headers=owner
        )

        assert response.status_code == 200
        assert response.json()["data"]["unique_id"] == "ESP9876543210A"

        body = client.get("/api/registrations/status", params={"query": "esp9876543210a"}).json()
        assert body["data"]["found"] is True
        assert body["data"]["registration"]["id"] == submitted["id"]
        assert body["message"] == "You have successfully completed your registration."

        again = client.patch(
            f"/api/registrations/{submitted['id']}/status", json={"status": "rejected"}, headers=owner
        )
        assert again.status_code == 409

    def test_unknown_status_value(self, client, owner, submitted):
        response = client.patch(
            f"/api/registrations/{submitted['id']}/status", json={"status": "pending"}, headers=owner
        )
        assert response.status_code == 422

    def test_lookup_not_found(self, client):
        body = client.get("/api/registrations/status", params={"query": "9000000000"}).json()
        assert body["data"]["found"] is False

    def test_blank_lookup_is_an_input_error(self, client):
        response = client.get("/api/registrations/status", params={"query": "   "})

        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert body["notices"][-1]["code"] == "VALIDATION_ERROR"

    def test_malformed_row_does_not_break_requests(self, client, app, owner, submitted):
        app.state.store.update("registrations", {"status": "archived"}, {"id": submitted["id"]})

        response = client.get("/api/snapshot", headers=owner)

        assert response.status_code == 200
        assert response.json()["registrations"] == []

    def test_stats(self, client, owner, submitted):
        body = client.get("/api/registrations/stats", headers=owner).json()
        assert body["data"] == {"total": 1, "pending": 1, "approved": 0, "rejected": 0}

    def test_delete(self, client, owner, submitted):
        assert client.delete(f"/api/registrations/{submitted['id']}", headers=APPLICANT).status_code == 403
        assert client.delete(f"/api/registrations/{submitted['id']}", headers=owner).status_code == 200
        assert client.delete(f"/api/registrations/{submitted['id']}", headers=owner).status_code == 404


class TestAuthEndpoints:

    def test_me(self, client, owner):
        assert client.get("/api/auth/me").json() == {"user": None, "is_admin": False}
        assert client.get("/api/auth/me", headers=owner).json()["is_admin"] is True

    def test_bootstrap_only_once(self, client, owner, bootstrap_token):
        response = client.post("/api/auth/bootstrap", json={"token": bootstrap_token}, headers=APPLICANT)
        assert response.status_code == 403

    def test_bootstrap_needs_identity(self, client, bootstrap_token):
        response = client.post("/api/auth/bootstrap", json={"token": bootstrap_token})
        assert response.status_code == 401

    def test_assign_role(self, client, owner):
        assert client.post("/api/auth/roles", json={"user_id": "user-1"}, headers=APPLICANT).status_code == 403

        response = client.post("/api/auth/roles", json={"user_id": "user-1"}, headers=owner)
        assert response.status_code == 200
        assert client.get("/api/auth/me", headers=APPLICANT).json()["is_admin"] is True


class TestContentEndpoints:

    def test_admin_posts_announcement(self, client, owner):
        payload = {"title": "Camp", "content": "Monday 10am"}

        assert client.post("/api/content/announcement", json=payload, headers=APPLICANT).status_code == 403

        response = client.post("/api/content/announcement", json=payload, headers=owner)
        assert response.status_code == 201

        announcements = client.get("/api/snapshot").json()["announcements"]
        assert [a["title"] for a in announcements] == ["Camp"]

    def test_unknown_kind(self, client, owner):
        response = client.post("/api/content/poll", json={"title": "x"}, headers=owner)
        assert response.status_code == 400

    def test_update_missing(self, client, owner):
        response = client.patch("/api/content/category/missing", json={"label": "X"}, headers=owner)
        assert response.status_code == 404
