"""Security tests for tenant escape/isolation attacks

Tests cover:
- Reading, updating and deleting another organization's resources by ID
- org_id injection in request bodies
- Forged org_id claims in otherwise valid tokens
- Listing endpoints scoped to the caller's organization
"""

import os

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from docuflow.auth.jwt import ALGORITHM
from docuflow.models import Document, DocumentRequest, Org, Profile, RoutingRule, StorageConfig

from fixtures.factories import make_profile, make_storage


pytestmark = pytest.mark.security


@pytest.fixture
def foreign(db_session: Session, other_org: Org):
    """One resource of every kind, all owned by other_org."""
    employee = make_profile(db_session, other_org, "secret@other.com", "member", full_name="Secret Person")
    storage = make_storage(db_session, other_org, name="Other archive")
    rule = RoutingRule(
        org_id=other_org.id, name="Other rule", priority=0, is_active=True,
        conditions={}, actions={"storage_id": str(storage.id)},
    )
    request = DocumentRequest(
        org_id=other_org.id, recipient_email="secret@other.com", subject="Other request", status="pending",
    )
    db_session.add_all([rule, request])
    db_session.commit()
    document = Document(
        org_id=other_org.id,
        storage_config_id=storage.id,
        sender_email="secret@other.com",
        original_filename="secret.pdf",
        storage_path="documents/secret.pdf",
        storage_provider="object_store",
    )
    db_session.add(document)
    db_session.commit()
    return {
        "employee": employee,
        "storage": storage,
        "rule": rule,
        "request": request,
        "document": document,
    }


class TestCrossTenantAccessById:

    @pytest.mark.parametrize("path", [
        "/api/v1/employees/{employee}",
        "/api/v1/storage/{storage}",
        "/api/v1/routing-rules/{rule}",
        "/api/v1/document-requests/{request}",
        "/api/v1/documents/{document}",
        "/api/v1/documents/{document}/download",
    ])
    def test_read_returns_404(self, client: TestClient, admin_headers, foreign, path):
        url = path.format(**{name: obj.id for name, obj in foreign.items()})
        assert client.get(url, headers=admin_headers).status_code == 404

    def test_update_returns_404(self, client: TestClient, db_session: Session, admin_headers, foreign):
        responses = [
            client.put(f"/api/v1/employees/{foreign['employee'].id}", headers=admin_headers, json={"full_name": "Pwned"}),
            client.put(f"/api/v1/storage/{foreign['storage'].id}", headers=admin_headers, json={"name": "Pwned"}),
            client.put(f"/api/v1/routing-rules/{foreign['rule'].id}", headers=admin_headers, json={"name": "Pwned"}),
            client.put(f"/api/v1/document-requests/{foreign['request'].id}", headers=admin_headers, json={"status": "sent"}),
            client.put(f"/api/v1/documents/{foreign['document'].id}/status", headers=admin_headers, json={"status": "processed"}),
        ]
        assert [r.status_code for r in responses] == [404] * 5

        db_session.expire_all()
        assert foreign["employee"].full_name == "Secret Person"
        assert foreign["storage"].name == "Other archive"
        assert foreign["rule"].name == "Other rule"
        assert foreign["request"].status == "pending"
        assert foreign["document"].status == "received"

    def test_delete_returns_404(self, client: TestClient, db_session: Session, admin_headers, foreign):
        for path in (
            f"/api/v1/employees/{foreign['employee'].id}",
            f"/api/v1/storage/{foreign['storage'].id}",
            f"/api/v1/routing-rules/{foreign['rule'].id}",
            f"/api/v1/document-requests/{foreign['request'].id}",
        ):
            assert client.delete(path, headers=admin_headers).status_code == 404

        assert db_session.query(Profile).filter(Profile.id == foreign["employee"].id).count() == 1
        assert db_session.query(StorageConfig).filter(StorageConfig.id == foreign["storage"].id).count() == 1
        assert db_session.query(RoutingRule).filter(RoutingRule.id == foreign["rule"].id).count() == 1
        assert db_session.query(DocumentRequest).filter(DocumentRequest.id == foreign["request"].id).count() == 1

    def test_storage_connection_test_returns_404(self, client: TestClient, admin_headers, foreign):
        response = client.post(f"/api/v1/storage/{foreign['storage'].id}/test-connection", headers=admin_headers)
        assert response.status_code == 404


class TestListingIsolation:

    @pytest.mark.parametrize("path", [
        "/api/v1/document-requests",
        "/api/v1/documents",
    ])
    def test_paginated_lists_are_empty(self, client: TestClient, admin_headers, foreign, path):
        data = client.get(path, headers=admin_headers).json()["data"]
        assert data == {"items": [], "total": 0}

    def test_employee_list_excludes_other_org(self, client: TestClient, admin_user, admin_headers, foreign):
        data = client.get("/api/v1/employees", headers=admin_headers, params={"search": "secret"}).json()["data"]
        assert data["total"] == 0

    def test_rule_and_storage_lists_are_empty(self, client: TestClient, admin_headers, foreign):
        assert client.get("/api/v1/routing-rules", headers=admin_headers).json()["data"] == []
        assert client.get("/api/v1/storage", headers=admin_headers).json()["data"] == []

    def test_activity_excludes_other_org(self, client: TestClient, other_admin_headers, admin_headers):
        client.put("/api/v1/organizations/settings", headers=other_admin_headers, json={"theme": "dark"})

        assert client.get("/api/v1/activity", headers=admin_headers).json()["data"]["total"] == 0
        assert client.get("/api/v1/activity", headers=other_admin_headers).json()["data"]["total"] == 1


class TestOrgIdInjection:

    def test_body_org_id_is_ignored(self, client: TestClient, db_session: Session, test_org: Org, other_org: Org, admin_headers):
        response = client.post("/api/v1/document-requests", headers=admin_headers, json={
            "org_id": str(other_org.id),
            "recipient_email": "ana@acme.com",
            "subject": "Injected",
        })

        assert response.status_code == 201
        request = db_session.query(DocumentRequest).one()
        assert request.org_id == test_org.id

    def test_rule_cannot_target_foreign_storage(self, client: TestClient, admin_headers, foreign):
        response = client.post("/api/v1/routing-rules", headers=admin_headers, json={
            "name": "Exfiltrate",
            "actions": {"storage_id": str(foreign["storage"].id)},
        })
        assert response.status_code == 404

    def test_forged_org_claim_stays_in_own_org(self, client: TestClient, test_org: Org, other_org: Org, admin_user, foreign):
        claims = {
            "sub": str(admin_user.id),
            "org_id": str(other_org.id),
            "role": "owner",
            "email": admin_user.email,
        }
        forged = jwt.encode(claims, os.environ["JWT_SECRET"], algorithm=ALGORITHM)

        response = client.get("/api/v1/documents", headers={"Authorization": f"Bearer {forged}"})

        assert response.status_code == 200
        assert response.json()["data"]["total"] == 0
