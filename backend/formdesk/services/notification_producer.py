"""Enqueue notification jobs for a freshly inserted response.

Runs inside the submission transaction, so a response and its jobs commit
(or roll back) together. One job per configured channel:

* webhook, when the client has a webhook_url
* email, when notifications are enabled and there is at least one recipient
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from formdesk.models.client import Client
from formdesk.models.notification import (
    EmailNotification, NotificationStatus, WebhookNotification,
)
from formdesk.models.response import Response

logger = logging.getLogger(__name__)


class NotificationProducer:
    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, response: Response, client: Optional[Client]) -> List[object]:
        """Add pending jobs for the response to the session (caller commits)."""
        jobs = []
        if client is None:
            logger.info("Response %s has no client; no notifications queued", response.id)
            return jobs

        webhook_url = (client.webhook_url or "").strip()
        if webhook_url and not self._has_job(WebhookNotification, response.id):
            job = WebhookNotification(
                response_id=response.id,
                webhook_url=webhook_url,
                status=NotificationStatus.PENDING.value,
                attempts=0,
            )
            self.db.add(job)
            jobs.append(job)

        recipients = client.email_recipients
        if client.email_notifications_enabled and recipients and not self._has_job(EmailNotification, response.id):
            job = EmailNotification(
                response_id=response.id,
                recipients=recipients,
                status=NotificationStatus.PENDING.value,
                retry_count=0,
            )
            self.db.add(job)
            jobs.append(job)

        logger.info(
            "Queued %d notification job(s) for response %s (client %s)",
            len(jobs), response.id, client.id,
        )
        return jobs

    def _has_job(self, model, response_id: str) -> bool:
        return (
            self.db.query(model.id)
            .filter(model.response_id == response_id)
            .first()
        ) is not None
