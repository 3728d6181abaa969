"""Security tests for authentication bypass attempts

Tests cover:
- Missing, malformed, expired and tampered tokens
- 'none' algorithm and wrong-secret tokens
- Tokens of deleted, disabled and directory-only profiles
- Role checks on admin endpoints
"""

import base64
import json
import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from docuflow.auth.jwt import ALGORITHM, create_access_token
from docuflow.models import Org, Profile

from fixtures.factories import auth_headers_for, make_profile


pytestmark = pytest.mark.security

ME = "/api/v1/auth/me"


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).decode().rstrip("=")


def _claims(profile: Profile, **overrides) -> dict:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(profile.id),
        "org_id": str(profile.org_id),
        "role": profile.role,
        "email": profile.email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=1)).timestamp()),
    }
    claims.update(overrides)
    return claims


class TestTokenValidation:

    def test_missing_token(self, client: TestClient):
        response = client.get(ME)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["success"] is False

    @pytest.mark.parametrize("header", [
        "Bearer",
        "Bearer not-a-jwt",
        "Basic YWRtaW46YWRtaW4=",
        "Bearer a.b.c",
    ])
    def test_malformed_header(self, client: TestClient, header):
        assert client.get(ME, headers={"Authorization": header}).status_code == 401

    def test_expired_token(self, client: TestClient, member_user: Profile):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            _claims(member_user, iat=int(past.timestamp()), exp=int((past + timedelta(minutes=5)).timestamp())),
            os.environ["JWT_SECRET"],
            algorithm=ALGORITHM,
        )

        response = client.get(ME, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["code"] == "SESSION_EXPIRED"

    def test_tampered_payload(self, client: TestClient, member_user: Profile):
        header, _, signature = create_access_token(
            user_id=member_user.id, org_id=member_user.org_id, role="member", email=member_user.email,
        ).split(".")
        tampered = f"{header}.{_b64(_claims(member_user, role='owner'))}.{signature}"

        response = client.get("/api/v1/activity", headers={"Authorization": f"Bearer {tampered}"})

        assert response.status_code == 401

    def test_none_algorithm(self, client: TestClient, owner_user: Profile):
        token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(_claims(owner_user))}."
        assert client.get(ME, headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_wrong_secret(self, client: TestClient, owner_user: Profile):
        token = jwt.encode(_claims(owner_user), "another-secret-of-sufficient-length-for-hs256", algorithm=ALGORITHM)
        assert client.get(ME, headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_subject_not_a_uuid(self, client: TestClient, owner_user: Profile):
        token = jwt.encode(_claims(owner_user, sub="admin"), os.environ["JWT_SECRET"], algorithm=ALGORITHM)
        assert client.get(ME, headers={"Authorization": f"Bearer {token}"}).status_code == 401


class TestProfileState:

    def test_unknown_profile(self, client: TestClient, test_org: Org):
        token = create_access_token(user_id=uuid4(), org_id=test_org.id, role="owner", email="ghost@test.com")
        assert client.get(ME, headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_deleted_profile(self, client: TestClient, db_session: Session, member_user: Profile):
        headers = auth_headers_for(member_user)
        db_session.delete(member_user)
        db_session.commit()

        assert client.get(ME, headers=headers).status_code == 401

    def test_directory_only_profile(self, client: TestClient, db_session: Session, test_org: Org):
        employee = make_profile(db_session, test_org, "worker@test.com", "member")
        assert client.get(ME, headers=auth_headers_for(employee)).status_code == 401

    def test_disabled_profile(self, client: TestClient, db_session: Session, member_user: Profile):
        headers = auth_headers_for(member_user)
        member_user.status = "DISABLED"
        db_session.commit()

        assert client.get(ME, headers=headers).status_code == 403


class TestRoleChecks:

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/v1/activity"),
        ("get", "/api/v1/organizations/settings"),
        ("post", "/api/v1/storage"),
        ("post", "/api/v1/routing-rules"),
        ("post", "/api/v1/routing-rules/defaults"),
        ("post", "/api/v1/employees"),
        ("post", "/api/v1/inbound/email"),
    ])
    def test_member_cannot_use_admin_endpoints(self, client: TestClient, member_headers, method, path):
        response = client.request(method.upper(), path, headers=member_headers, json={})
        assert response.status_code == 403

    def test_role_claim_comes_from_profile(self, client: TestClient, member_user: Profile):
        token = create_access_token(
            user_id=member_user.id, org_id=member_user.org_id, role="owner", email=member_user.email,
        )
        response = client.get("/api/v1/activity", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_admin_cannot_create_owner(self, client: TestClient, admin_headers):
        response = client.post("/api/v1/employees", headers=admin_headers, json={
            "email": "boss@test.com", "full_name": "New Boss", "role": "owner",
        })
        assert response.status_code == 403
