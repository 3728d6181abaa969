"""Celery application for background ingestion and token refresh.

Run a worker with:
    celery -A docuflow.workers.celery_app worker --beat --loglevel=info
"""

from celery import Celery
from celery.schedules import crontab

from ..config import get_settings
from ..observability.logging_config import configure_logging

settings = get_settings()
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

celery_app = Celery(
    "docuflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["docuflow.integrations.tasks", "docuflow.ingestion.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "refresh-provider-tokens": {
        "task": "integrations.refresh_tokens",
        "schedule": crontab(minute="*/30"),
        "options": {
            "expires": 1500,
        },
    },
}
