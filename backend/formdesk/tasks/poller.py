"""In-process notification poller for deployments without a Celery worker."""
import logging
import threading

from formdesk.core.database import SessionLocal
from formdesk.services import notification_queue
from formdesk.services.response_email import EmailDeliveryService
from formdesk.services.webhook_delivery import WebhookDeliveryService

logger = logging.getLogger(__name__)


def run_once() -> dict:
    """One pass over both queues."""
    db = SessionLocal()
    try:
        released = notification_queue.release_stale_claims(db)
        webhooks = WebhookDeliveryService(db).process_pending()
        emails = EmailDeliveryService(db).process_pending()
        return {"released": released, "webhooks": webhooks, "emails": emails}
    finally:
        db.close()


def start_poller(interval: int, stop_event: threading.Event) -> threading.Thread:
    def _loop():
        while not stop_event.is_set():
            try:
                result = run_once()
                if result["webhooks"]["processed"] or result["emails"]["processed"]:
                    logger.info("Notification poll results: %s", result)
            except Exception as e:
                # keep the thread alive; the next pass retries
                logger.error("Notification poll error: %s", e, exc_info=True)
            stop_event.wait(interval)

    thread = threading.Thread(target=_loop, name="notification-poller", daemon=True)
    thread.start()
    logger.info("Notification poller started (every %s seconds)", interval)
    return thread
