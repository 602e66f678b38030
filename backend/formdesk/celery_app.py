from celery import Celery
from formdesk.core.config import settings

celery_app = Celery(
    "formdesk",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["formdesk.tasks.async_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
)

# Delivery workers are driven from outside; beat is the default driver
celery_app.conf.beat_schedule = {
    "process-pending-webhooks": {
        "task": "process_pending_webhooks",
        "schedule": 60.0,
    },
    "process-pending-emails": {
        "task": "process_pending_emails",
        "schedule": 60.0,
    },
    "release-stale-claims": {
        "task": "release_stale_claims",
        "schedule": 300.0,
    },
}
