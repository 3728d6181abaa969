"""Integration tests for authentication flow

Tests cover:
- Login with valid and invalid credentials
- JWT issuance and bearer authentication on /auth/me
- Directory-only and disabled profiles
- Login rate limiting
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from docuflow.auth.jwt import decode_token
from docuflow.models import ActivityLog, Org, Profile

from fixtures.factories import ADMIN_PASSWORD, make_profile


pytestmark = pytest.mark.integration


def login(client: TestClient, email: str, password: str, org_slug: str = "test-org"):
    return client.post("/api/v1/auth/login", json={"org_slug": org_slug, "email": email, "password": password})


class TestLoginEndpoint:
    """POST /auth/login"""

    def test_login_with_valid_credentials(self, client: TestClient, admin_user: Profile):
        response = login(client, "admin@test.com", ADMIN_PASSWORD)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["expires_in"] > 0

        payload = decode_token(body["data"]["access_token"])
        assert payload["sub"] == str(admin_user.id)
        assert payload["org_id"] == str(admin_user.org_id)
        assert payload["role"] == "admin"

    def test_email_is_case_insensitive(self, client: TestClient, admin_user: Profile):
        response = login(client, "Admin@Test.com", ADMIN_PASSWORD)
        assert response.status_code == 200

    def test_login_records_last_login(self, client: TestClient, db_session: Session, admin_user: Profile):
        assert admin_user.last_login_at is None
        login(client, "admin@test.com", ADMIN_PASSWORD)
        db_session.refresh(admin_user)
        assert admin_user.last_login_at is not None

        actions = [entry.action for entry in db_session.query(ActivityLog).all()]
        assert "login_success" in actions

    def test_wrong_password(self, client: TestClient, db_session: Session, admin_user: Profile):
        response = login(client, "admin@test.com", "WrongP@ss999")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid email or password."

        entry = db_session.query(ActivityLog).filter(ActivityLog.action == "login_failed").one()
        assert entry.details["reason"] == "invalid_credentials"

    def test_unknown_email_and_org_give_same_error(self, client: TestClient, admin_user: Profile):
        unknown_email = login(client, "nobody@test.com", ADMIN_PASSWORD)
        unknown_org = login(client, "admin@test.com", ADMIN_PASSWORD, org_slug="no-such-org")

        assert unknown_email.status_code == unknown_org.status_code == 401
        assert unknown_email.json()["error"] == unknown_org.json()["error"]

    def test_same_email_in_two_orgs(self, client: TestClient, db_session: Session, admin_user: Profile, other_org: Org):
        make_profile(db_session, other_org, "admin@test.com", "member", "OtherP@ss456")

        assert login(client, "admin@test.com", ADMIN_PASSWORD).status_code == 200
        assert login(client, "admin@test.com", ADMIN_PASSWORD, org_slug="other-org").status_code == 401

        response = login(client, "admin@test.com", "OtherP@ss456", org_slug="other-org")
        assert decode_token(response.json()["data"]["access_token"])["org_id"] == str(other_org.id)

    def test_directory_only_profile_cannot_login(self, client: TestClient, db_session: Session, test_org: Org):
        make_profile(db_session, test_org, "driver@test.com", "member")
        assert login(client, "driver@test.com", "anything").status_code == 401

    def test_disabled_profile_cannot_login(self, client: TestClient, db_session: Session, test_org: Org):
        make_profile(db_session, test_org, "gone@test.com", "member", "GoneP@ss123", status="DISABLED")

        response = login(client, "gone@test.com", "GoneP@ss123")
        assert response.status_code == 401
        assert response.json()["error"] == "Account is disabled"

    def test_invalid_body(self, client: TestClient):
        response = client.post("/api/v1/auth/login", json={"org_slug": "test-org", "email": "not-an-email", "password": "x"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any("email" in detail["loc"] for detail in body["details"])


class TestRateLimit:

    def test_sixth_attempt_is_rejected(self, client: TestClient, admin_user: Profile):
        for _ in range(5):
            assert login(client, "admin@test.com", "WrongP@ss999").status_code == 401

        response = login(client, "admin@test.com", ADMIN_PASSWORD)
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMITED"
        assert int(response.headers["Retry-After"]) > 0


class TestCurrentProfile:
    """GET /auth/me"""

    def test_me(self, client: TestClient, member_headers, member_user: Profile):
        response = client.get("/api/v1/auth/me", headers=member_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "member@test.com"
        assert data["role"] == "member"
        assert data["can_login"] is True
        assert "password_hash" not in data

    def test_token_from_login_works(self, client: TestClient, owner_user: Profile):
        token = login(client, "owner@test.com", "OwnerP@ss123").json()["data"]["access_token"]
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["data"]["full_name"] == "Olivia Owner"

    def test_missing_token(self, client: TestClient):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_disabled_after_issue(self, client: TestClient, db_session: Session, member_user: Profile, member_headers):
        member_user.status = "DISABLED"
        db_session.commit()

        assert client.get("/api/v1/auth/me", headers=member_headers).status_code == 403
