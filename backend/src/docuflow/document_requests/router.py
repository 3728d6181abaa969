"""Document request API endpoints"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..activity.service import log_from_request
from ..api.errors import ErrorMessages, bad_request, forbidden
from ..api.responses import success_response
from ..auth.dependencies import CurrentUser
from ..database import get_db
from ..dependencies import TenantQuery
from ..models.document import Document
from ..models.document_request import DocumentRequest
from ..models.email_account import EmailAccount
from .schemas import DocumentRequestCreate, DocumentRequestUpdate
from .service import InvalidStatusTransition, change_status, record_history
from .status import RequestStatus, get_allowed_transitions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/document-requests", tags=["document-requests"])


def _detail(db: Session, request: DocumentRequest) -> dict:
    documents = (
        db.query(Document)
        .filter(Document.org_id == request.org_id, Document.document_request_id == request.id)
        .order_by(Document.created_at.asc())
        .all()
    )
    data = request.to_dict()
    data["history"] = [entry.to_dict() for entry in request.history]
    data["documents"] = [document.to_dict() for document in documents]
    data["allowed_transitions"] = [s.value for s in get_allowed_transitions(RequestStatus(request.status))]
    return data


def _require_manage(current_user, request: DocumentRequest) -> None:
    """Members manage their own requests; admins and owners manage all."""
    if current_user.role == "member" and request.created_by != current_user.id:
        raise forbidden()


@router.get("")
async def list_requests(
    current_user: CurrentUser,
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    recipient: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = TenantQuery.scoped_query(db, DocumentRequest, current_user.org_id)
    if status_filter:
        query = query.filter(DocumentRequest.status == status_filter.value)
    if recipient:
        query = query.filter(DocumentRequest.recipient_email == recipient.strip().lower())

    total = query.count()
    requests = query.order_by(DocumentRequest.created_at.desc()).offset(offset).limit(limit).all()
    return success_response({"items": [r.to_dict() for r in requests], "total": total})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_requests(
    request_data: DocumentRequestCreate,
    request: Request,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
):
    """
    Create one pending document request per recipient.

    Raises:
        ApiError 404: If email_account_id is not an account of this organization
    """
    if request_data.email_account_id:
        TenantQuery.get_or_404(
            db, EmailAccount, request_data.email_account_id, current_user.org_id,
            ErrorMessages.EMAIL_ACCOUNT_NOT_FOUND,
        )

    created = []
    for recipient in request_data.all_recipients():
        document_request = DocumentRequest(
            org_id=current_user.org_id,
            email_account_id=request_data.email_account_id,
            recipient_email=recipient,
            subject=request_data.subject.strip(),
            message_body=request_data.message_body,
            request_type=request_data.request_type,
            status=RequestStatus.PENDING.value,
            due_date=request_data.due_date,
            expected_document_count=request_data.expected_document_count,
            created_by=current_user.id,
        )
        db.add(document_request)
        db.flush()
        record_history(db, document_request, None, RequestStatus.PENDING.value, current_user.id, "Request created")
        created.append(document_request)

    log_from_request(
        db, request, current_user.org_id, "create", "document_request",
        user_id=current_user.id,
        details={"count": len(created), "request_type": request_data.request_type},
    )
    db.commit()

    return success_response(
        [r.to_dict() for r in created],
        message=f"Created {len(created)} document request{'s' if len(created) != 1 else ''}",
    )


@router.get("/{request_id}")
async def get_request(request_id: UUID, current_user: CurrentUser, db: Session = Depends(get_db)):
    """Request with its status history, linked documents and allowed next statuses."""
    document_request = TenantQuery.get_or_404(
        db, DocumentRequest, request_id, current_user.org_id, ErrorMessages.REQUEST_NOT_FOUND
    )
    return success_response(_detail(db, document_request))


@router.put("/{request_id}")
async def update_request(
    request_id: UUID,
    update_data: DocumentRequestUpdate,
    request: Request,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
):
    """
    Update request fields and/or move it to another status.

    Raises:
        ApiError 400: Forbidden status transition or empty update
        ApiError 403: Member updating someone else's request
        ApiError 404: Request not found
    """
    document_request = TenantQuery.get_or_404(
        db, DocumentRequest, request_id, current_user.org_id, ErrorMessages.REQUEST_NOT_FOUND
    )
    _require_manage(current_user, document_request)

    changes = update_data.model_dump(exclude_unset=True)
    changes.pop("reason", None)
    if not changes:
        raise bad_request(ErrorMessages.INVALID_INPUT)

    for field in ("subject", "message_body", "request_type", "due_date", "expected_document_count"):
        if field in changes:
            setattr(document_request, field, changes[field])

    if update_data.status is not None:
        try:
            change_status(db, document_request, update_data.status, current_user.id, update_data.reason)
        except InvalidStatusTransition as e:
            raise bad_request(
                str(e),
                details={"allowed": [s.value for s in get_allowed_transitions(RequestStatus(e.from_status))]},
            )

    log_from_request(
        db, request, current_user.org_id,
        "status_change" if update_data.status is not None else "update",
        "document_request",
        user_id=current_user.id, resource_id=document_request.id,
        details={"fields": sorted(changes), "status": document_request.status},
    )
    db.commit()
    db.refresh(document_request)

    return success_response(_detail(db, document_request), message="Document request updated")


@router.delete("/{request_id}")
async def delete_request(
    request_id: UUID,
    request: Request,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
):
    """Delete a request; documents already received stay and are unlinked."""
    document_request = TenantQuery.get_or_404(
        db, DocumentRequest, request_id, current_user.org_id, ErrorMessages.REQUEST_NOT_FOUND
    )
    _require_manage(current_user, document_request)

    db.query(Document).filter(
        Document.org_id == current_user.org_id,
        Document.document_request_id == document_request.id,
    ).update({Document.document_request_id: None}, synchronize_session="fetch")

    log_from_request(
        db, request, current_user.org_id, "delete", "document_request",
        user_id=current_user.id, resource_id=document_request.id,
        details={"recipient_email": document_request.recipient_email},
    )
    db.delete(document_request)
    db.commit()

    return success_response({"id": str(request_id)}, message="Document request deleted")
