"""Celery task for asynchronous email ingestion."""

import base64
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from celery import shared_task

from ..database import SessionLocal
from ..workers.base import validate_org_id
from .parser import parse_email
from .service import DocumentIngestionService, IngestionError

logger = logging.getLogger(__name__)


@shared_task(name="ingestion.process_email", bind=True)
def process_email_task(
    self,
    org_id: str,
    raw_message_b64: str,
    email_account_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Parse and ingest one raw message for org_id.

    Args:
        org_id: Organization UUID string (REQUIRED for tenant isolation)
        raw_message_b64: Base64 encoded RFC 822 message
        email_account_id: Receiving email account, if known

    Returns:
        Dict with status and the ingestion result
    """
    db = SessionLocal()
    try:
        org_uuid = validate_org_id(db, org_id)
        raw_message = base64.b64decode(raw_message_b64)
        parsed = parse_email(raw_message)

        service = DocumentIngestionService(db, org_uuid)
        result = service.process_email(parsed, UUID(email_account_id) if email_account_id else None)
        db.commit()

        logger.info(
            f"Email {parsed.id} ingested",
            extra={"org_id": org_id, "task_id": self.request.id, "documents": len(result.documents)},
        )
        return {"status": "completed", "result": result.to_dict()}
    except (ValueError, IngestionError) as e:
        db.rollback()
        logger.warning(f"Email ingestion rejected: {e}", extra={"org_id": org_id, "task_id": self.request.id})
        return {"status": "failed", "error": str(e)}
    except Exception:
        db.rollback()
        logger.error("Email ingestion failed", exc_info=True, extra={"org_id": org_id, "task_id": self.request.id})
        raise
    finally:
        db.close()
