"""Document API endpoints"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..activity.service import log_from_request
from ..api.errors import ApiError, ErrorMessages, bad_request
from ..api.responses import success_response
from ..auth.dependencies import AdminUser, CurrentUser
from ..database import get_db
from ..dependencies import TenantQuery
from ..models.document import Document
from ..models.storage_config import StorageConfig
from ..storage.factory import create_adapter
from ..storage.port import ReconnectRequiredError, StorageError
from .status import DocumentStatus, can_transition, get_allowed_transitions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class DocumentStatusUpdate(BaseModel):
    status: DocumentStatus
    reason: Optional[str] = Field(None, max_length=1000)


@router.get("")
async def list_documents(
    current_user: CurrentUser,
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    document_request_id: Optional[UUID] = Query(None),
    sender_email: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = TenantQuery.scoped_query(db, Document, current_user.org_id)
    if status_filter:
        query = query.filter(Document.status == status_filter.value)
    if document_request_id:
        query = query.filter(Document.document_request_id == document_request_id)
    if sender_email:
        query = query.filter(Document.sender_email == sender_email.strip().lower())

    total = query.count()
    documents = query.order_by(Document.created_at.desc()).offset(offset).limit(limit).all()
    return success_response({"items": [d.to_dict() for d in documents], "total": total})


@router.get("/{document_id}")
async def get_document(document_id: UUID, current_user: CurrentUser, db: Session = Depends(get_db)):
    document = TenantQuery.get_or_404(db, Document, document_id, current_user.org_id, ErrorMessages.DOCUMENT_NOT_FOUND)
    data = document.to_dict()
    data["allowed_transitions"] = [s.value for s in get_allowed_transitions(DocumentStatus(document.status))]
    return success_response(data)


@router.put("/{document_id}/status")
async def update_document_status(
    document_id: UUID,
    update_data: DocumentStatusUpdate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Move a document through review (admin/owner only).

    Raises:
        ApiError 400: If the transition is not allowed
    """
    document = TenantQuery.get_or_404(db, Document, document_id, current_user.org_id, ErrorMessages.DOCUMENT_NOT_FOUND)
    old_status = document.status

    if not can_transition(DocumentStatus(old_status), update_data.status):
        raise bad_request(
            f"Cannot change status from '{old_status}' to '{update_data.status.value}'",
            details={"allowed": [s.value for s in get_allowed_transitions(DocumentStatus(old_status))]},
        )

    document.status = update_data.status.value
    log_from_request(
        db, request, current_user.org_id, "status_change", "document",
        user_id=current_user.id, resource_id=document.id,
        details={"old_status": old_status, "new_status": document.status, "reason": update_data.reason},
    )
    db.commit()
    db.refresh(document)

    return success_response(document.to_dict(), message="Document status updated")


@router.get("/{document_id}/download")
async def download_document(document_id: UUID, current_user: CurrentUser, db: Session = Depends(get_db)):
    """
    Stream a stored document back from its storage provider.

    Raises:
        ApiError 404: Document, its storage config or the stored file is gone
        ApiError 502: Provider failure
    """
    document = TenantQuery.get_or_404(db, Document, document_id, current_user.org_id, ErrorMessages.DOCUMENT_NOT_FOUND)
    if document.storage_config_id is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, ErrorMessages.STORAGE_NOT_FOUND)
    config = TenantQuery.get_or_404(
        db, StorageConfig, document.storage_config_id, current_user.org_id, ErrorMessages.STORAGE_NOT_FOUND
    )

    adapter = create_adapter(config, db=db)
    try:
        content = adapter.download_file(document.storage_path)
    except FileNotFoundError:
        raise ApiError(status.HTTP_404_NOT_FOUND, "The stored file no longer exists.")
    except ReconnectRequiredError:
        raise
    except StorageError as e:
        logger.error(f"Download failed for document {document.id}: {e}", extra={"provider": config.provider})
        raise ApiError(status.HTTP_502_BAD_GATEWAY, "Failed to download file from storage.")
    finally:
        adapter.close()
    db.commit()

    return Response(
        content=content,
        media_type=document.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{document.stored_filename or document.original_filename}"'},
    )
