from formdesk.celery_app import celery_app
from formdesk.core.database import SessionLocal
from formdesk.services import notification_queue
from formdesk.services.response_email import EmailDeliveryService
from formdesk.services.webhook_delivery import WebhookDeliveryService


@celery_app.task(name="process_pending_webhooks")
def process_pending_webhooks(limit: int = None):
    """
    Deliver one batch of pending webhook jobs
    """
    db = SessionLocal()
    try:
        return WebhookDeliveryService(db).process_pending(limit)
    finally:
        db.close()


@celery_app.task(name="process_pending_emails")
def process_pending_emails(limit: int = None):
    """
    Send notification emails for responses with pending email jobs
    """
    db = SessionLocal()
    try:
        return EmailDeliveryService(db).process_pending(limit)
    finally:
        db.close()


@celery_app.task(name="send_response_email")
def send_response_email(response_id: str):
    db = SessionLocal()
    try:
        return EmailDeliveryService(db).send_for(response_id)
    finally:
        db.close()


@celery_app.task(name="release_stale_claims")
def release_stale_claims():
    db = SessionLocal()
    try:
        return notification_queue.release_stale_claims(db)
    finally:
        db.close()
