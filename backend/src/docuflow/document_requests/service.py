"""Document request lifecycle: status changes, history and document linking"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.document_request import DocumentRequest, DocumentRequestStatusHistory
from ..routing.engine import normalize_subject
from .status import OPEN_STATUSES, RequestStatus, can_transition

logger = logging.getLogger(__name__)


class InvalidStatusTransition(ValueError):
    def __init__(self, from_status: Optional[str], to_status: str):
        super().__init__(f"Cannot change status from '{from_status}' to '{to_status}'")
        self.from_status = from_status
        self.to_status = to_status


def record_history(
    db: Session,
    request: DocumentRequest,
    old_status: Optional[str],
    new_status: str,
    changed_by: Optional[UUID] = None,
    reason: Optional[str] = None,
) -> DocumentRequestStatusHistory:
    entry = DocumentRequestStatusHistory(
        document_request_id=request.id,
        old_status=old_status,
        new_status=new_status,
        changed_by=changed_by,
        reason=reason,
    )
    db.add(entry)
    return entry


def change_status(
    db: Session,
    request: DocumentRequest,
    new_status: RequestStatus,
    changed_by: Optional[UUID] = None,
    reason: Optional[str] = None,
) -> bool:
    """Move a request to new_status and write a history row.

    Returns:
        False when the request already has new_status (nothing recorded)

    Raises:
        InvalidStatusTransition: If the state machine forbids the change
    """
    new_status = RequestStatus(new_status)
    old_status = request.status
    if old_status == new_status.value:
        return False

    if not can_transition(RequestStatus(old_status) if old_status else None, new_status):
        raise InvalidStatusTransition(old_status, new_status.value)

    now = datetime.now(timezone.utc)
    request.status = new_status.value
    request.last_status_change = now
    if new_status == RequestStatus.SENT and request.sent_at is None:
        request.sent_at = now
    if new_status == RequestStatus.COMPLETED:
        request.completed_at = now

    record_history(db, request, old_status, new_status.value, changed_by, reason)
    logger.info(
        f"Document request {request.id} status {old_status} -> {new_status.value}",
        extra={"org_id": str(request.org_id)},
    )
    return True


def record_document(db: Session, request: DocumentRequest, changed_by: Optional[UUID] = None) -> None:
    """Count a newly linked document and advance the request.

    A waiting request becomes received, a received one verifying, and the
    request completes once expected_document_count documents are in.
    """
    request.document_count = (request.document_count or 0) + 1

    if request.status in (RequestStatus.PENDING.value, RequestStatus.SENT.value, RequestStatus.MISSING_FILES.value):
        change_status(db, request, RequestStatus.RECEIVED, changed_by, "Document received")
    if request.status == RequestStatus.RECEIVED.value:
        change_status(db, request, RequestStatus.VERIFYING, changed_by, "Documents linked to request")

    expected = request.expected_document_count
    if expected and request.document_count >= expected and request.status == RequestStatus.VERIFYING.value:
        change_status(
            db, request, RequestStatus.COMPLETED, changed_by,
            f"Received {request.document_count} of {expected} expected documents",
        )


def find_open_request(
    db: Session,
    org_id: UUID,
    sender_email: str,
    subject: Optional[str] = None,
) -> Optional[DocumentRequest]:
    """Pick the open request an email from sender_email answers.

    A request whose normalized subject contains, or is contained in, the
    email's normalized subject wins; otherwise the most recent open request.
    """
    candidates: List[DocumentRequest] = (
        db.query(DocumentRequest)
        .filter(
            DocumentRequest.org_id == org_id,
            DocumentRequest.recipient_email == sender_email.lower(),
            DocumentRequest.status.in_([s.value for s in OPEN_STATUSES]),
        )
        .order_by(DocumentRequest.created_at.desc())
        .all()
    )
    if not candidates:
        return None

    email_subject = normalize_subject(subject).lower()
    if email_subject:
        for candidate in candidates:
            request_subject = normalize_subject(candidate.subject).lower()
            if request_subject and (request_subject in email_subject or email_subject in request_subject):
                return candidate

    return candidates[0]


def mark_sender_requests_received(
    db: Session,
    org_id: UUID,
    sender_email: str,
    reason: str = "Reply received by email",
) -> int:
    """Move the sender's pending and sent requests to received. Returns the count."""
    waiting = (
        db.query(DocumentRequest)
        .filter(
            DocumentRequest.org_id == org_id,
            DocumentRequest.recipient_email == sender_email.lower(),
            DocumentRequest.status.in_([RequestStatus.PENDING.value, RequestStatus.SENT.value]),
        )
        .all()
    )
    for request in waiting:
        change_status(db, request, RequestStatus.RECEIVED, reason=reason)
    return len(waiting)
