"""Inbound email API endpoint"""

import base64
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..api.errors import ApiError, ErrorMessages, bad_request
from ..api.responses import success_response
from ..auth.dependencies import AdminUser
from ..config import get_settings
from ..database import get_db
from ..dependencies import TenantQuery
from ..models.email_account import EmailAccount
from .parser import parse_email
from .service import DocumentIngestionService, IngestionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inbound", tags=["ingestion"])


@router.post("/email")
async def ingest_email(
    request: Request,
    current_user: AdminUser,
    email_account_id: Optional[UUID] = Query(None),
    background: bool = Query(False),
    db: Session = Depends(get_db),
):
    """
    Ingest a raw RFC 822 message (admin/owner only).

    The request body is the message itself (Content-Type message/rfc822).
    With background=true the message is queued for the ingestion worker and
    the task id is returned.

    Returns:
        Ingestion result: documents stored, per-attachment errors, the rule
        applied and the linked document request
    """
    raw_message = await request.body()
    if not raw_message.strip():
        raise bad_request(ErrorMessages.EMAIL_EMPTY)
    if len(raw_message) > get_settings().INGEST_MAX_MESSAGE_SIZE:
        raise ApiError(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, ErrorMessages.EMAIL_TOO_LARGE)

    if email_account_id:
        TenantQuery.get_or_404(
            db, EmailAccount, email_account_id, current_user.org_id, ErrorMessages.EMAIL_ACCOUNT_NOT_FOUND,
        )

    if background:
        from .tasks import process_email_task

        task = process_email_task.delay(
            org_id=str(current_user.org_id),
            raw_message_b64=base64.b64encode(raw_message).decode("ascii"),
            email_account_id=str(email_account_id) if email_account_id else None,
        )
        logger.info("Email queued for ingestion", extra={"org_id": str(current_user.org_id), "task_id": task.id})
        return success_response({"task_id": task.id, "status": "queued"}, message="Email queued for processing")

    try:
        parsed = parse_email(raw_message)
    except ValueError as e:
        raise bad_request(str(e))

    service = DocumentIngestionService(db, current_user.org_id)
    try:
        result = service.process_email(parsed, email_account_id)
    except IngestionError as e:
        db.rollback()
        raise bad_request(str(e))

    db.commit()
    message = "Email processed" if result.success else "Email processed with errors"
    return success_response(result.to_dict(), message=message)
