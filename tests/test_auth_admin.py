"""
Auth, admin settings and health endpoint tests.
"""

import pytest

from traveldesk.models import db
from traveldesk.models.notification import EmailLog


class TestLogin:
    @pytest.fixture()
    def user(self, make_user):
        return make_user("ana@finance.gov.nr", password="Secret123!", first_name="Ana", last_name="D")

    def test_login_returns_token(self, client, user):
        res = client.post("/api/v1/auth/login", json={"email": "Ana@Finance.gov.nr", "password": "Secret123!"})
        assert res.status_code == 200
        data = res.get_json()
        assert data["token_type"] == "Bearer"
        assert data["user"]["email"] == "ana@finance.gov.nr"

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.get_json()["full_name"] == "Ana D"

    def test_wrong_password(self, client, user):
        res = client.post("/api/v1/auth/login", json={"email": user.email, "password": "nope"})
        assert res.status_code == 401

    def test_missing_fields(self, client):
        res = client.post("/api/v1/auth/login", json={"email": ""})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_suspended_user_cannot_login(self, client, make_user):
        make_user("gone@finance.gov.nr", password="Secret123!", status="SUSPENDED")
        res = client.post("/api/v1/auth/login", json={"email": "gone@finance.gov.nr", "password": "Secret123!"})
        assert res.status_code == 401

    def test_token_of_suspended_user_is_rejected(self, client, make_user, auth_headers):
        user = make_user("later@finance.gov.nr")
        headers = auth_headers(user)
        user.status = "SUSPENDED"
        db.session.commit()
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_me_requires_token(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401


class TestAdminSettings:
    def test_read_defaults(self, client, admin, auth_headers):
        res = client.get("/api/v1/admin/settings", headers=auth_headers(admin))
        assert res.status_code == 200
        data = res.get_json()
        assert data["workflow"]["maxTravellersPerApplication"] == 10
        assert "applicationSubmitted" in data["email"]["templates"]

    def test_non_admin_forbidden(self, client, reviewer, auth_headers):
        assert client.get("/api/v1/admin/settings", headers=auth_headers(reviewer)).status_code == 403

    def test_update_merges(self, client, admin, auth_headers):
        res = client.put(
            "/api/v1/admin/settings",
            json={"workflow": {"maxTravellersPerApplication": 3}},
            headers=auth_headers(admin),
        )
        assert res.status_code == 200
        data = res.get_json()
        assert data["workflow"]["maxTravellersPerApplication"] == 3
        assert data["workflow"]["maxTravelDurationDays"] == 30

    def test_invalid_update(self, client, admin, auth_headers):
        res = client.put(
            "/api/v1/admin/settings",
            json={"email": {"notifications": {"enabled": "yes"}}},
            headers=auth_headers(admin),
        )
        assert res.status_code == 422
        assert "email.notifications.enabled" in res.get_json()["details"]


class TestHealth:
    def test_live(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        checks = res.get_json()["checks"]
        assert checks["database"]["status"] == "ok"
        assert checks["mail"] == {"status": "ok", "mode": "log-only", "dispatch": "inline"}
        assert checks["notifications"] == {"status": "ok", "failed_emails": 0}

    def test_failed_emails_reported_without_degrading(self, client):
        db.session.add(EmailLog(recipient_email="a@x.gov", subject="s", status="failed", attempts=1))
        db.session.commit()
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["checks"]["notifications"] == {"status": "backlog", "failed_emails": 1}

    def test_request_id_echoed(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").get_json() == {"status": "ok"}

    def test_unknown_api_path(self, client):
        res = client.get("/api/v1/nowhere")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
