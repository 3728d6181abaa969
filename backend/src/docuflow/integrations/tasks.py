"""Celery tasks for provider integrations."""

import logging
from typing import Any, Dict

from celery import shared_task

from ..database import get_db_session
from .token_refresh import refresh_expiring_tokens

logger = logging.getLogger(__name__)


@shared_task(name="integrations.refresh_tokens", bind=True)
def refresh_tokens_task(self) -> Dict[str, Any]:
    """Refresh Google and Microsoft tokens that expire within the hour.

    Scheduled every 30 minutes by Celery Beat (see workers.celery_app).
    Failures are reported per account; the task itself does not raise.

    Returns:
        Dict with refreshed/failed counts and per-account results
    """
    logger.info("Token refresh task started", extra={"task_id": self.request.id})

    try:
        with get_db_session() as db:
            results = refresh_expiring_tokens(db)
    except Exception as e:
        logger.error("Token refresh task failed", exc_info=True, extra={"error": str(e)})
        return {"status": "failed", "error": str(e), "results": []}

    refreshed = sum(1 for r in results if r["success"])
    return {
        "status": "completed",
        "refreshed": refreshed,
        "failed": len(results) - refreshed,
        "results": results,
    }
