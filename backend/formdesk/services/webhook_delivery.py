"""Outbound webhook delivery for new responses (Zapier and other catch hooks).

Drains webhook_notifications: claim each pending job, POST the canonical
response payload to the snapshotted URL, record the outcome on the job and
append the attempt to webhook_delivery_logs.
"""
import logging
import requests
from typing import Optional
from sqlalchemy.orm import Session

from formdesk.core.config import settings
from formdesk.models.form import FormStep
from formdesk.models.notification import (
    NotificationStatus, WebhookDeliveryLog, WebhookNotification,
)
from formdesk.models.response import Response
from formdesk.schemas.fields import FieldType
from formdesk.services import notification_queue
from formdesk.services.notification_queue import utcnow

logger = logging.getLogger(__name__)

EVENT_TYPE = "response.created"
USER_AGENT = "FormDesk-Webhook/1.0"


def _number(value):
    return float(value) if value is not None else None


def _option_label(step: Optional[FormStep], option_id: Optional[str]) -> Optional[str]:
    if step is None or not option_id:
        return None
    for option in step.options:
        if option.id == option_id:
            return option.label
    return None


def build_payload(response: Response) -> dict:
    """Canonical JSON body for a response, shared by webhooks and the polling API."""
    form = response.form
    client = form.client if form else None

    answers = sorted(
        response.answers,
        key=lambda a: a.step.step_order if a.step is not None else 0,
    )

    answer_items = []
    for answer in answers:
        step = answer.step
        answer_items.append({
            "question": step.title if step else "Question",
            "question_type": step.question_type if step else None,
            "step_order": step.step_order if step else None,
            "answer_text": answer.answer_text,
            "selected_option_id": answer.selected_option_id,
            "selected_option_label": _option_label(step, answer.selected_option_id),
            "file_url": answer.file_url,
            "file_name": answer.file_name,
            "file_size": answer.file_size,
            "width": _number(answer.width),
            "height": _number(answer.height),
            "depth": _number(answer.depth),
            "units": answer.units,
            "scale_rating": answer.scale_rating,
            "frames_count": answer.frames_count,
        })

    answerable = [
        s for s in (form.steps if form else [])
        if s.question_type != FieldType.STATEMENT.value
    ]
    completion = round(len(answers) * 100 / len(answerable)) if answerable else 100

    contact = {
        "name": response.contact_name or "",
        "email": response.contact_email or "",
        "phone": response.contact_phone or "",
        "postcode": response.contact_postcode or "",
    }

    return {
        "response_id": response.id,
        "form_id": response.form_id,
        "form_name": form.name if form else None,
        "client_name": client.name if client else None,
        "submitted_at": response.submitted_at.isoformat() if response.submitted_at else None,
        "contact": contact,
        "contact__name": contact["name"],
        "contact__email": contact["email"],
        "contact__phone": contact["phone"],
        "contact__postcode": contact["postcode"],
        "answers": answer_items,
        "file_attachments": [a.file_url for a in answers if a.file_url],
        "file_names": [a.file_name for a in answers if a.file_name],
        "total_questions_answered": len(answers),
        "completion_percentage": min(completion, 100),
    }


class WebhookDeliveryService:
    """Delivers pending webhook jobs. Safe to run from several workers at once."""

    def __init__(self, db: Session, timeout: Optional[int] = None, max_attempts: Optional[int] = None):
        self.db = db
        self.timeout = timeout or settings.WEBHOOK_TIMEOUT
        self.max_attempts = max_attempts or settings.WEBHOOK_MAX_ATTEMPTS

    def build_payload(self, response: Response) -> dict:
        return build_payload(response)

    def claim(self, job_id: str) -> bool:
        return notification_queue.claim(
            self.db,
            WebhookNotification,
            job_id,
            counter=WebhookNotification.attempts,
            max_count=self.max_attempts,
        )

    def process_pending(self, limit: Optional[int] = None) -> dict:
        """Deliver one batch of pending jobs, oldest first."""
        limit = limit or settings.WEBHOOK_BATCH_SIZE
        job_ids = [
            row.id for row in (
                self.db.query(WebhookNotification.id)
                .filter(
                    WebhookNotification.status == NotificationStatus.PENDING.value,
                    WebhookNotification.attempts < self.max_attempts,
                )
                .order_by(WebhookNotification.created_at, WebhookNotification.id)
                .limit(limit)
                .all()
            )
        ]

        stats = {"processed": 0, "successful": 0, "failed": 0, "retried": 0, "skipped": 0}
        for job_id in job_ids:
            if not self.claim(job_id):
                # another worker got there first
                stats["skipped"] += 1
                continue
            outcome = self.deliver(job_id)
            stats["processed"] += 1
            stats[outcome] += 1

        if job_ids:
            logger.info("Webhook batch finished: %s", stats)
        return stats

    def deliver(self, job_id: str) -> str:
        """Send one claimed job. Returns successful, failed or retried."""
        job = self.db.get(WebhookNotification, job_id)
        if job is None:
            logger.warning("Webhook job %s vanished after claim", job_id)
            return "failed"

        if not job.webhook_url:
            return self._fail(job, "No webhook URL configured")

        response = self.db.get(Response, job.response_id)
        if response is None:
            return self._fail(job, f"Response {job.response_id} not found")

        if job.payload is None:
            job.payload = self.build_payload(response)

        result = self._fire(job.webhook_url, job.payload, notification_id=job.id, response_id=job.response_id)
        now = utcnow()
        job.last_attempt_at = now
        job.claimed_at = None

        if result["success"]:
            job.status = NotificationStatus.SENT.value
            job.sent_at = now
            job.error_message = None
            self.db.commit()
            return "successful"

        job.attempts = (job.attempts or 0) + 1
        job.error_message = result.get("error")
        if job.attempts >= self.max_attempts:
            job.status = NotificationStatus.FAILED.value
            outcome = "failed"
            logger.error("Webhook job %s failed permanently after %d attempts: %s", job.id, job.attempts, job.error_message)
        else:
            job.status = NotificationStatus.PENDING.value
            outcome = "retried"
        self.db.commit()
        return outcome

    def _fail(self, job: WebhookNotification, message: str) -> str:
        logger.error("Webhook job %s failed: %s", job.id, message)
        job.status = NotificationStatus.FAILED.value
        job.error_message = message
        job.claimed_at = None
        self.db.commit()
        return "failed"

    def send_test(self, url: str, payload: Optional[dict] = None) -> dict:
        """One-off delivery to check an endpoint. No job is touched."""
        payload = payload or {
            "response_id": "test",
            "form_name": "Test Form",
            "submitted_at": utcnow().isoformat(),
            "contact__name": "Test User",
            "contact__email": "test@example.com",
            "answers": [],
            "test": True,
        }
        result = self._fire(url, payload)
        self.db.commit()
        return result

    def _fire(self, url: str, payload: dict, notification_id: Optional[str] = None,
              response_id: Optional[str] = None) -> dict:
        """POST the payload and log the attempt."""
        try:
            resp = requests.post(
                url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": USER_AGENT,
                    "X-FormDesk-Event": EVENT_TYPE,
                    "X-FormDesk-Timestamp": utcnow().isoformat(),
                },
                timeout=self.timeout,
            )

            ok = 200 <= resp.status_code < 300
            result = {
                "success": ok,
                "status_code": resp.status_code,
                "response": resp.text[:500],
            }
            if not ok:
                result["error"] = f"HTTP {resp.status_code}: {resp.text[:200]}"
                logger.warning("Webhook to %s returned %s: %s", url, resp.status_code, resp.text[:200])
            else:
                logger.info("Webhook sent to %s (%s)", url, resp.status_code)

        except requests.RequestException as e:
            logger.error("Webhook to %s failed: %s", url, e)
            result = {"success": False, "error": str(e)}

        self._log_webhook(url, payload, result, notification_id, response_id)
        return result

    def _log_webhook(self, url: str, payload: dict, result: dict,
                     notification_id: Optional[str], response_id: Optional[str]):
        """Audit row, committed with the job update."""
        self.db.add(WebhookDeliveryLog(
            notification_id=notification_id,
            response_id=response_id,
            webhook_url=url,
            payload=payload,
            response_status=result.get("status_code"),
            response_body=result.get("response", ""),
            error=result.get("error"),
        ))
