"""Inbound document ingestion.

Routes every attachment of a parsed email to a storage provider: the sender
is resolved against the employee directory, linked to an open document
request, matched against the org's routing rules and the files are uploaded
to the rule's (or the default) storage config.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..activity.service import log_activity
from ..dependencies import TenantQuery
from ..document_requests.service import find_open_request, mark_sender_requests_received, record_document
from ..models.document import Document
from ..models.profile import Profile
from ..models.routing_rule import RoutingRule
from ..models.storage_config import StorageConfig
from ..routing.engine import RoutingContext, file_extension, resolve_route
from ..storage.factory import create_adapter
from ..storage.port import ReconnectRequiredError, StorageAdapter, StorageError
from ..storage.service import get_default_storage
from .parser import ParsedEmail

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """The message as a whole could not be ingested (no storage configured)."""


@dataclass
class IngestionResult:
    message_id: str
    sender_email: str
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    storage_config_id: Optional[str] = None
    folder_path: Optional[str] = None
    document_request_id: Optional[str] = None
    employee_id: Optional[str] = None
    documents: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    requests_received: int = 0

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message_id": self.message_id,
            "sender_email": self.sender_email,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "storage_config_id": self.storage_config_id,
            "folder_path": self.folder_path,
            "document_request_id": self.document_request_id,
            "employee_id": self.employee_id,
            "documents": self.documents,
            "errors": self.errors,
            "requests_received": self.requests_received,
        }


class DocumentIngestionService:
    """Ingest parsed emails for one organization.

    The service flushes but never commits; the caller owns the transaction.
    """

    def __init__(
        self,
        db: Session,
        org_id: UUID,
        adapter_factory: Optional[Callable[..., StorageAdapter]] = None,
    ):
        self.db = db
        self.org_id = org_id
        self.adapter_factory = adapter_factory or create_adapter

    def _find_employee(self, sender_email: str) -> Optional[Profile]:
        return (
            TenantQuery.scoped_query(self.db, Profile, self.org_id)
            .filter(Profile.email == sender_email.lower())
            .first()
        )

    def _resolve_storage(self, storage_id: Optional[str]) -> StorageConfig:
        if storage_id:
            config = (
                TenantQuery.scoped_query(self.db, StorageConfig, self.org_id)
                .filter(StorageConfig.id == UUID(str(storage_id)), StorageConfig.is_active.is_(True))
                .first()
            )
            if config:
                return config
            logger.warning(
                f"Routing rule storage {storage_id} is missing or inactive, using default storage",
                extra={"org_id": str(self.org_id)},
            )

        config = get_default_storage(self.db, self.org_id)
        if config is None:
            raise IngestionError("No active storage configuration for organization")
        return config

    def process_email(self, email: ParsedEmail, email_account_id: Optional[UUID] = None) -> IngestionResult:
        """Route and store every attachment of email.

        Failed attachments are collected in result.errors; the remaining
        attachments are still processed.

        Raises:
            IngestionError: If no storage config can receive the documents
        """
        sender_email = email.sender.email.lower()
        result = IngestionResult(message_id=email.id, sender_email=sender_email)
        log_extra = {"org_id": str(self.org_id), "message_id": email.id}

        employee = self._find_employee(sender_email)
        request = find_open_request(self.db, self.org_id, sender_email, email.subject)
        if employee:
            result.employee_id = str(employee.id)
        if request:
            result.document_request_id = str(request.id)

        context = RoutingContext(
            sender_email=sender_email,
            sender_name=email.sender.name or (employee.full_name if employee else None),
            subject=email.subject,
            attachment_filenames=[a.filename for a in email.attachments],
            employee_name=employee.full_name if employee else None,
            employee_email=employee.email if employee else None,
            document_request_id=str(request.id) if request else None,
            received_at=email.date,
        )
        rules = (
            TenantQuery.scoped_query(self.db, RoutingRule, self.org_id)
            .order_by(RoutingRule.created_at.asc(), RoutingRule.id.asc())
            .all()
        )
        decision = resolve_route(rules, context)
        if decision.rule is not None:
            result.rule_id = str(decision.rule.id)
            result.rule_name = decision.rule.name
        result.folder_path = decision.folder_path

        if not email.attachments:
            logger.info(f"Email from {sender_email} has no attachments", extra=log_extra)
            result.requests_received = mark_sender_requests_received(self.db, self.org_id, sender_email)
            return result

        config = self._resolve_storage(decision.storage_id)
        result.storage_config_id = str(config.id)

        try:
            adapter = self.adapter_factory(config, db=self.db)
        except ReconnectRequiredError:
            raise
        except StorageError as e:
            self._fail_attachments(result, email, e, log_extra)
        else:
            try:
                self._store_attachments(adapter, email, config, decision, request, email_account_id, result, log_extra)
            finally:
                adapter.close()

        result.requests_received = mark_sender_requests_received(self.db, self.org_id, sender_email)
        self.db.flush()

        logger.info(
            f"Ingested {len(result.documents)} of {len(email.attachments)} attachments from {sender_email}",
            extra={**log_extra, "rule": result.rule_name, "folder_path": result.folder_path},
        )
        return result

    def _store_attachments(self, adapter, email, config, decision, request, email_account_id, result, log_extra) -> None:
        if decision.folder_path:
            try:
                adapter.create_folder(decision.folder_path)
            except ReconnectRequiredError:
                raise
            except StorageError as e:
                self._fail_attachments(result, email, e, log_extra)
                return

        upload_metadata = {str(k): str(v) for k, v in decision.metadata.items()}
        upload_metadata["sender"] = email.sender.email.lower()

        for attachment in email.attachments:
            try:
                upload = adapter.upload_file(
                    attachment.content,
                    attachment.filename,
                    folder_path=decision.folder_path,
                    metadata=upload_metadata,
                    content_type=attachment.mime_type,
                )
            except StorageError as e:
                logger.error(f"Failed to store attachment {attachment.filename}: {e}", extra=log_extra)
                result.errors.append({"filename": attachment.filename, "error": str(e)})
                continue

            document = self._record(email, attachment, upload, config, decision, request, email_account_id)
            result.documents.append(document.to_dict())

    def _fail_attachments(self, result: IngestionResult, email: ParsedEmail, error: StorageError, log_extra) -> None:
        """Storage could not be reached at all; every attachment fails with the same error."""
        logger.error(f"Storage unavailable, {len(email.attachments)} attachments not stored: {error}", extra=log_extra)
        result.errors.extend({"filename": a.filename, "error": str(error)} for a in email.attachments)

    def _record(self, email, attachment, upload, config, decision, request, email_account_id) -> Document:
        stored_filename = upload.path.rsplit("/", 1)[-1]
        metadata = dict(decision.metadata)
        metadata.update({
            "message_id": email.id,
            "subject": email.subject,
            "rule_name": decision.rule.name if decision.rule is not None else None,
        })
        if upload.url:
            metadata["url"] = upload.url
        if upload.file_id:
            metadata["file_id"] = upload.file_id

        document = Document(
            org_id=self.org_id,
            document_request_id=request.id if request else None,
            storage_config_id=config.id,
            routing_rule_id=decision.rule.id if decision.rule is not None else None,
            email_account_id=email_account_id,
            sender_email=email.sender.email.lower(),
            original_filename=attachment.filename,
            stored_filename=stored_filename,
            storage_path=upload.path,
            storage_provider=config.provider,
            file_type=file_extension(attachment.filename) or None,
            file_size=attachment.size,
            mime_type=attachment.mime_type,
            metadata_json=metadata,
            status="received",
        )
        self.db.add(document)
        self.db.flush()

        if request is not None:
            record_document(self.db, request)

        log_activity(
            self.db,
            self.org_id,
            "route",
            "document",
            resource_id=document.id,
            details={
                "filename": attachment.filename,
                "storage_path": upload.path,
                "rule": decision.rule.name if decision.rule is not None else None,
                "sender_email": document.sender_email,
            },
        )
        return document
