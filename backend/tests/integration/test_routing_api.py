"""Integration tests for routing rule management

Tests cover:
- Rule CRUD, ordering and pattern validation
- Default rule seeding
- Dry-run of the active rules
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from docuflow.models import Org, RoutingRule

from fixtures.factories import make_profile, make_storage


pytestmark = pytest.mark.integration

RULES = "/api/v1/routing-rules"


def create_rule(client: TestClient, headers, **body):
    body.setdefault("name", "Rule")
    return client.post(RULES, headers=headers, json=body)


class TestRuleCrud:

    def test_create_and_get(self, client: TestClient, admin_headers, storage_config):
        response = create_rule(
            client, admin_headers,
            name=" Payslips ",
            priority=50,
            conditions={"subject_pattern": "lohn|gehalt", "file_types": [".PDF", " "]},
            actions={"storage_id": str(storage_config.id), "folder_path": "hr/{employee_name}/{year}"},
        )

        assert response.status_code == 201
        rule = response.json()["data"]
        assert rule["name"] == "Payslips"
        assert rule["conditions"] == {"subject_pattern": "lohn|gehalt", "file_types": ["pdf"]}
        assert rule["actions"]["storage_id"] == str(storage_config.id)
        assert rule["actions"]["folder_path"] == "hr/{employee_name}/{year}"
        assert rule["is_active"] is True

        fetched = client.get(f"{RULES}/{rule['id']}", headers=admin_headers).json()["data"]
        assert fetched == rule

    def test_invalid_pattern_rejected(self, client: TestClient, admin_headers):
        response = create_rule(client, admin_headers, conditions={"sender_pattern": "([unclosed"})
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_storage_of_other_org_rejected(self, client: TestClient, db_session: Session, admin_headers, other_org: Org):
        foreign = make_storage(db_session, other_org, "Foreign")
        response = create_rule(client, admin_headers, actions={"storage_id": str(foreign.id)})
        assert response.status_code == 404

    def test_list_in_evaluation_order(self, client: TestClient, admin_headers, member_headers):
        for name, priority in (("low", 1), ("high", 90), ("mid", 50)):
            create_rule(client, admin_headers, name=name, priority=priority)

        rules = client.get(RULES, headers=member_headers).json()["data"]
        assert [r["name"] for r in rules] == ["high", "mid", "low"]

    def test_update(self, client: TestClient, admin_headers):
        rule_id = create_rule(client, admin_headers, name="Old").json()["data"]["id"]

        response = client.put(f"{RULES}/{rule_id}", headers=admin_headers, json={
            "name": "New",
            "is_active": False,
            "conditions": {"requires_employee": True},
        })

        assert response.status_code == 200
        rule = response.json()["data"]
        assert (rule["name"], rule["is_active"]) == ("New", False)
        assert rule["conditions"] == {"requires_employee": True}

    def test_empty_update_rejected(self, client: TestClient, admin_headers):
        rule_id = create_rule(client, admin_headers).json()["data"]["id"]
        assert client.put(f"{RULES}/{rule_id}", headers=admin_headers, json={}).status_code == 400

    def test_delete(self, client: TestClient, db_session: Session, admin_headers):
        rule_id = create_rule(client, admin_headers).json()["data"]["id"]

        assert client.delete(f"{RULES}/{rule_id}", headers=admin_headers).status_code == 200
        assert db_session.query(RoutingRule).count() == 0
        assert client.get(f"{RULES}/{rule_id}", headers=admin_headers).status_code == 404

    def test_member_cannot_manage(self, client: TestClient, member_headers):
        assert create_rule(client, member_headers).status_code == 403


class TestDefaultRules:

    def test_seed_defaults(self, client: TestClient, admin_headers, storage_config):
        response = client.post(f"{RULES}/defaults", headers=admin_headers)

        assert response.status_code == 201
        rules = response.json()["data"]
        assert len(rules) == 7
        assert {r["actions"]["storage_id"] for r in rules} == {str(storage_config.id)}
        assert rules[-1]["name"] == "Default Catch-All"

    def test_defaults_require_storage(self, client: TestClient, admin_headers):
        response = client.post(f"{RULES}/defaults", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "NO_ACTIVE_STORAGE"

    def test_defaults_only_once(self, client: TestClient, admin_headers, storage_config):
        client.post(f"{RULES}/defaults", headers=admin_headers)
        response = client.post(f"{RULES}/defaults", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "RULES_ALREADY_EXIST"


class TestDryRun:

    @pytest.fixture
    def seeded(self, client: TestClient, admin_headers, storage_config):
        client.post(f"{RULES}/defaults", headers=admin_headers)

    def test_employee_rule_wins(self, client: TestClient, db_session: Session, test_org: Org, admin_headers, seeded):
        make_profile(db_session, test_org, "ana@test.com", "member", full_name="Ana Silva")

        response = client.post(f"{RULES}/test", headers=admin_headers, json={
            "sender_email": "Ana@Test.com",
            "subject": "Re: invoice",
            "attachment_filenames": ["scan.pdf"],
            "received_at": "2026-03-02T10:00:00Z",
        })

        result = response.json()["data"]
        assert result["matched"] is True
        assert result["rule"]["name"] == "Employee Documents"
        assert result["folder_path"] == "documents/employees/Ana Silva/2026-03-02"

    def test_unknown_sender_falls_through_to_file_type(self, client: TestClient, admin_headers, seeded):
        result = client.post(f"{RULES}/test", headers=admin_headers, json={
            "sender_email": "stranger@example.com",
            "subject": "Unterlagen",
            "attachment_filenames": ["table.XLSX"],
            "received_at": "2026-03-02T10:00:00Z",
        }).json()["data"]

        assert result["rule"]["name"] == "Excel Spreadsheets"
        assert result["folder_path"] == "documents/spreadsheets/2026-03-02"

    def test_subject_rule(self, client: TestClient, admin_headers, seeded):
        result = client.post(f"{RULES}/test", headers=admin_headers, json={
            "sender_email": "billing@vendor.com",
            "subject": "Fwd: Your invoice 4711",
            "received_at": "2026-03-02T10:00:00Z",
        }).json()["data"]

        assert result["rule"]["name"] == "Invoices"
        assert result["folder_path"] == "documents/invoices/2026/03"

    def test_equal_priority_prefers_older_rule(self, client: TestClient, db_session: Session, test_org: Org, admin_headers):
        # Inserted newest first so storage order disagrees with creation order
        for name, created_at in (("Newer", datetime(2026, 2, 1, tzinfo=timezone.utc)), ("Older", datetime(2026, 1, 1, tzinfo=timezone.utc))):
            db_session.add(RoutingRule(
                org_id=test_org.id,
                name=name,
                priority=50,
                conditions={},
                actions={"folder_path": name.lower()},
                created_at=created_at,
            ))
        db_session.commit()

        result = client.post(f"{RULES}/test", headers=admin_headers, json={
            "sender_email": "someone@example.com",
            "received_at": "2026-03-02T10:00:00Z",
        }).json()["data"]

        assert result["rule"]["name"] == "Older"
        assert result["folder_path"] == "older"

    def test_no_rules(self, client: TestClient, member_headers):
        result = client.post(f"{RULES}/test", headers=member_headers, json={
            "sender_email": "someone@example.com",
            "received_at": "2026-03-02T10:00:00Z",
        }).json()["data"]

        assert result["matched"] is False
        assert result["rule"] is None
        assert result["folder_path"] == "documents/2026-03-02"
        assert result["storage_id"] is None
