"""Integration tests for inbound email ingestion

Tests cover:
- Attachments routed to the default folder and stored
- Routing rules with employee placeholders and rule storage
- Linking to open document requests and completing them
- Per-attachment and storage-wide failures, missing storage and request validation
- Queueing on the worker and the worker task itself
"""

import base64
from datetime import datetime, timezone
from email.message import EmailMessage

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from docuflow.ingestion import tasks
from docuflow.models import ActivityLog, Document, DocumentRequest, Org, RoutingRule
from docuflow.storage.port import ReconnectRequiredError, StorageError

from fixtures.factories import make_profile, make_storage


pytestmark = pytest.mark.integration

INBOUND = "/api/v1/inbound/email"


def raw_email(sender="Ana Silva <ana@acme.com>", subject="Documents", attachments=("license.pdf",)) -> bytes:
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = "inbox@docuflow.test"
    msg["Subject"] = subject
    msg["Date"] = "Mon, 02 Mar 2026 10:00:00 +0000"
    msg["Message-ID"] = "<msg-1@acme.com>"
    msg.set_content("Please find my documents attached.")
    for filename in attachments:
        msg.add_attachment(f"content of {filename}".encode(), maintype="application", subtype="pdf", filename=filename)
    return msg.as_bytes()


def post_email(client: TestClient, headers, raw: bytes, **params):
    return client.post(
        INBOUND,
        headers={**headers, "Content-Type": "message/rfc822"},
        content=raw,
        params=params,
    )


class TestIngest:

    def test_stores_attachments_in_default_folder(
        self, client: TestClient, db_session: Session, admin_headers, storage_config, memory_storage
    ):
        response = post_email(client, admin_headers, raw_email(attachments=("license.pdf", "passport.pdf")))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Email processed"
        result = body["data"]
        assert result["success"] is True
        assert result["folder_path"] == "documents/2026-03-02"
        assert result["rule_id"] is None
        assert result["storage_config_id"] == str(storage_config.id)
        assert [d["storage_path"] for d in result["documents"]] == [
            "documents/2026-03-02/license.pdf",
            "documents/2026-03-02/passport.pdf",
        ]

        assert memory_storage.files["documents/2026-03-02/license.pdf"] == b"content of license.pdf"
        assert memory_storage.metadata["documents/2026-03-02/license.pdf"]["sender"] == "ana@acme.com"
        assert "documents/2026-03-02" in memory_storage.folders

        documents = db_session.query(Document).order_by(Document.original_filename).all()
        assert [(d.sender_email, d.status, d.file_type) for d in documents] == [
            ("ana@acme.com", "received", "pdf"),
            ("ana@acme.com", "received", "pdf"),
        ]
        assert db_session.query(ActivityLog).filter(ActivityLog.action == "route").count() == 2

    def test_duplicate_names_are_renamed(self, client: TestClient, admin_headers, storage_config, memory_storage):
        result = post_email(client, admin_headers, raw_email(attachments=("scan.pdf", "scan.pdf"))).json()["data"]

        assert [d["stored_filename"] for d in result["documents"]] == ["scan.pdf", "scan_1.pdf"]
        assert [d["original_filename"] for d in result["documents"]] == ["scan.pdf", "scan.pdf"]

    def test_employee_rule_and_rule_storage(
        self, client: TestClient, db_session: Session, test_org: Org, admin_headers, storage_config, memory_storage
    ):
        employee = make_profile(db_session, test_org, "ana@acme.com", "member", full_name="Ana Silva")
        hr_storage = make_storage(db_session, test_org, name="HR", is_default=False)
        client.post("/api/v1/routing-rules", headers=admin_headers, json={
            "name": "Employee documents",
            "priority": 10,
            "conditions": {"requires_employee": True},
            "actions": {"storage_id": str(hr_storage.id), "folder_path": "hr/{employee_name}/{year}"},
        })

        result = post_email(client, admin_headers, raw_email(sender="ana@acme.com")).json()["data"]

        assert result["rule_name"] == "Employee documents"
        assert result["employee_id"] == str(employee.id)
        assert result["storage_config_id"] == str(hr_storage.id)
        assert result["documents"][0]["storage_path"] == "hr/Ana Silva/2026/license.pdf"

    def test_inactive_rule_storage_falls_back_to_default(
        self, client: TestClient, db_session: Session, test_org: Org, admin_headers, storage_config, memory_storage
    ):
        archived = make_storage(db_session, test_org, name="Old", is_default=False)
        client.post("/api/v1/routing-rules", headers=admin_headers, json={
            "name": "Everything",
            "actions": {"storage_id": str(archived.id), "folder_path": "inbox"},
        })
        archived.is_active = False
        db_session.commit()

        result = post_email(client, admin_headers, raw_email()).json()["data"]

        assert result["storage_config_id"] == str(storage_config.id)
        assert result["documents"][0]["storage_path"] == "inbox/license.pdf"

    def test_equal_priority_rules_apply_in_creation_order(
        self, client: TestClient, db_session: Session, test_org: Org, admin_headers, storage_config, memory_storage
    ):
        for name, created_at in (("Newer", datetime(2026, 2, 1, tzinfo=timezone.utc)), ("Older", datetime(2026, 1, 1, tzinfo=timezone.utc))):
            db_session.add(RoutingRule(
                org_id=test_org.id,
                name=name,
                conditions={},
                actions={"folder_path": name.lower()},
                created_at=created_at,
            ))
        db_session.commit()

        result = post_email(client, admin_headers, raw_email()).json()["data"]

        assert result["rule_name"] == "Older"
        assert result["documents"][0]["storage_path"] == "older/license.pdf"


class TestDocumentRequests:

    def test_reply_completes_request(
        self, client: TestClient, db_session: Session, admin_headers, storage_config, memory_storage
    ):
        request_id = client.post("/api/v1/document-requests", headers=admin_headers, json={
            "recipient_email": "ana@acme.com",
            "subject": "Onboarding documents",
            "expected_document_count": 2,
        }).json()["data"][0]["id"]

        result = post_email(
            client, admin_headers,
            raw_email(subject="RE: Onboarding documents", attachments=("license.pdf", "passport.pdf")),
        ).json()["data"]

        assert result["document_request_id"] == request_id
        assert {d["document_request_id"] for d in result["documents"]} == {request_id}

        detail = client.get(f"/api/v1/document-requests/{request_id}", headers=admin_headers).json()["data"]
        assert detail["status"] == "completed"
        assert detail["document_count"] == 2
        assert [h["new_status"] for h in detail["history"]] == ["pending", "received", "verifying", "completed"]
        assert len(detail["documents"]) == 2

    def test_partial_reply_stays_verifying(self, client: TestClient, admin_headers, storage_config, memory_storage):
        request_id = client.post("/api/v1/document-requests", headers=admin_headers, json={
            "recipient_email": "ana@acme.com",
            "subject": "Onboarding documents",
            "expected_document_count": 3,
        }).json()["data"][0]["id"]

        post_email(client, admin_headers, raw_email(attachments=("license.pdf",)))

        detail = client.get(f"/api/v1/document-requests/{request_id}", headers=admin_headers).json()["data"]
        assert (detail["status"], detail["document_count"]) == ("verifying", 1)

    def test_reply_without_attachments_marks_received(
        self, client: TestClient, admin_headers, storage_config, memory_storage
    ):
        request_id = client.post("/api/v1/document-requests", headers=admin_headers, json={
            "recipient_email": "ana@acme.com", "subject": "Passport copy",
        }).json()["data"][0]["id"]

        response = post_email(client, admin_headers, raw_email(attachments=()))

        result = response.json()["data"]
        assert result["documents"] == []
        assert result["requests_received"] == 1
        assert memory_storage.files == {}

        detail = client.get(f"/api/v1/document-requests/{request_id}", headers=admin_headers).json()["data"]
        assert detail["status"] == "received"
        assert detail["history"][-1]["reason"] == "Reply received by email"


class TestFailures:

    def test_failed_attachment_is_reported(self, client: TestClient, db_session: Session, admin_headers, storage_config, memory_storage):
        memory_storage.fail_on = {"broken.pdf"}

        response = post_email(client, admin_headers, raw_email(attachments=("broken.pdf", "license.pdf")))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Email processed with errors"
        assert body["data"]["success"] is False
        assert body["data"]["errors"] == [
            {"filename": "broken.pdf", "error": "Simulated failure for documents/2026-03-02/broken.pdf"},
        ]
        assert [d.original_filename for d in db_session.query(Document).all()] == ["license.pdf"]

    def test_folder_creation_failure_is_reported(
        self, client: TestClient, db_session: Session, admin_headers, storage_config, memory_storage, monkeypatch
    ):
        def quota_exceeded(folder_path):
            raise StorageError("drive quota exceeded")

        monkeypatch.setattr(memory_storage, "create_folder", quota_exceeded)

        response = post_email(client, admin_headers, raw_email(attachments=("license.pdf", "passport.pdf")))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Email processed with errors"
        assert body["data"]["documents"] == []
        assert body["data"]["errors"] == [
            {"filename": "license.pdf", "error": "drive quota exceeded"},
            {"filename": "passport.pdf", "error": "drive quota exceeded"},
        ]
        assert memory_storage.files == {}
        assert db_session.query(Document).count() == 0

    def test_unusable_storage_config_is_reported(
        self, client: TestClient, db_session: Session, admin_headers, storage_config, monkeypatch
    ):
        def incomplete(config, db=None, http_client=None):
            raise StorageError("Object store bucket is not configured")

        monkeypatch.setattr("docuflow.ingestion.service.create_adapter", incomplete)

        response = post_email(client, admin_headers, raw_email())

        assert response.status_code == 200
        assert response.json()["data"]["errors"] == [
            {"filename": "license.pdf", "error": "Object store bucket is not configured"},
        ]
        assert db_session.query(Document).count() == 0

    def test_reconnect_required_is_not_swallowed(
        self, client: TestClient, admin_headers, storage_config, monkeypatch
    ):
        def revoked(config, db=None, http_client=None):
            raise ReconnectRequiredError("google_drive access token expired and no refresh token is available")

        monkeypatch.setattr("docuflow.ingestion.service.create_adapter", revoked)

        response = post_email(client, admin_headers, raw_email())

        assert response.status_code == 401
        assert response.json()["code"] == "OAUTH_TOKEN_EXPIRED"

    def test_no_storage_configured(self, client: TestClient, db_session: Session, admin_headers, memory_storage):
        response = post_email(client, admin_headers, raw_email())

        assert response.status_code == 400
        assert response.json()["error"] == "No active storage configuration for organization"
        assert db_session.query(Document).count() == 0

    def test_empty_body(self, client: TestClient, admin_headers):
        assert post_email(client, admin_headers, b"  ").status_code == 400

    def test_message_without_sender(self, client: TestClient, admin_headers, storage_config):
        response = post_email(client, admin_headers, b"Subject: hello\r\n\r\nbody\r\n")
        assert response.status_code == 400

    def test_member_forbidden(self, client: TestClient, member_headers, storage_config):
        assert post_email(client, member_headers, raw_email()).status_code == 403

    def test_foreign_email_account(self, client: TestClient, admin_headers, storage_config):
        response = post_email(
            client, admin_headers, raw_email(), email_account_id="00000000-0000-0000-0000-000000000001"
        )
        assert response.status_code == 404


class TestBackground:

    def test_queues_task(self, client: TestClient, test_org: Org, admin_headers, monkeypatch):
        queued = []

        class FakeResult:
            id = "task-123"

        class FakeTask:
            def delay(self, **kwargs):
                queued.append(kwargs)
                return FakeResult()

        monkeypatch.setattr(tasks, "process_email_task", FakeTask())
        raw = raw_email()

        response = post_email(client, admin_headers, raw, background="true")

        assert response.status_code == 200
        assert response.json()["data"] == {"task_id": "task-123", "status": "queued"}
        assert queued == [{
            "org_id": str(test_org.id),
            "raw_message_b64": base64.b64encode(raw).decode("ascii"),
            "email_account_id": None,
        }]

    def test_task_ingests_message(self, db_session: Session, test_org: Org, storage_config, memory_storage, monkeypatch):
        monkeypatch.setattr(tasks, "SessionLocal", sessionmaker(bind=db_session.get_bind()))

        outcome = tasks.process_email_task.apply(kwargs={
            "org_id": str(test_org.id),
            "raw_message_b64": base64.b64encode(raw_email()).decode("ascii"),
        }).get()

        assert outcome["status"] == "completed"
        assert outcome["result"]["documents"][0]["storage_path"] == "documents/2026-03-02/license.pdf"
        assert db_session.query(Document).count() == 1

    def test_task_rejects_unknown_org(self, db_session: Session, monkeypatch):
        monkeypatch.setattr(tasks, "SessionLocal", sessionmaker(bind=db_session.get_bind()))

        outcome = tasks.process_email_task.apply(kwargs={
            "org_id": "00000000-0000-0000-0000-000000000001",
            "raw_message_b64": base64.b64encode(raw_email()).decode("ascii"),
        }).get()

        assert outcome["status"] == "failed"
        assert "does not exist" in outcome["error"]
