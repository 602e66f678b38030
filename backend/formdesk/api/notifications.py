"""Operator endpoints: trigger the delivery workers and inspect the queue.

Meant for cron-style callers and support staff; guarded by OPERATOR_TOKEN when set.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from formdesk.core.database import get_db
from formdesk.core.security import require_operator
from formdesk.models.notification import EmailNotification, WebhookNotification
from formdesk.models.response import Response, SubmissionIssue
from formdesk.schemas.integration import NotificationOut, WebhookTest
from formdesk.schemas.submission import SubmissionIssueOut
from formdesk.services import notification_queue
from formdesk.services.response_email import EmailDeliveryService
from formdesk.services.webhook_delivery import WebhookDeliveryService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
    dependencies=[Depends(require_operator)],
)


@router.post("/webhooks/process")
def process_webhooks(limit: Optional[int] = Query(None, ge=1, le=500), db: Session = Depends(get_db)):
    return WebhookDeliveryService(db).process_pending(limit)


@router.post("/webhooks/test")
def test_webhook(body: WebhookTest, db: Session = Depends(get_db)):
    return WebhookDeliveryService(db).send_test(body.url, body.payload)


@router.post("/emails/process")
def process_emails(limit: Optional[int] = Query(None, ge=1, le=500), db: Session = Depends(get_db)):
    return EmailDeliveryService(db).process_pending(limit)


@router.post("/emails/{response_id}/send")
def send_response_email(response_id: str, db: Session = Depends(get_db)):
    if not db.query(Response.id).filter(Response.id == response_id).first():
        raise HTTPException(status_code=404, detail="Response not found")
    return EmailDeliveryService(db).send_for(response_id)


@router.post("/release-stale")
def release_stale(timeout_seconds: Optional[int] = Query(None, ge=0), db: Session = Depends(get_db)):
    return {"released": notification_queue.release_stale_claims(db, timeout_seconds)}


@router.get("", response_model=List[NotificationOut])
def list_notifications(
    status: Optional[str] = None,
    channel: Optional[str] = Query(None, pattern="^(webhook|email)$"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    items = []
    if channel in (None, "webhook"):
        q = db.query(WebhookNotification)
        if status:
            q = q.filter(WebhookNotification.status == status)
        for job in q.order_by(WebhookNotification.created_at.desc()).limit(limit).all():
            items.append(NotificationOut(
                id=job.id,
                channel="webhook",
                response_id=job.response_id,
                status=job.status,
                attempts=job.attempts,
                error_message=job.error_message,
                target=job.webhook_url,
                created_at=job.created_at,
                sent_at=job.sent_at,
            ))
    if channel in (None, "email"):
        q = db.query(EmailNotification)
        if status:
            q = q.filter(EmailNotification.status == status)
        for job in q.order_by(EmailNotification.created_at.desc()).limit(limit).all():
            items.append(NotificationOut(
                id=job.id,
                channel="email",
                response_id=job.response_id,
                status=job.status,
                attempts=job.retry_count,
                error_message=job.error_message,
                target=", ".join(job.recipients or []),
                created_at=job.created_at,
                sent_at=job.sent_at,
            ))
    return items


@router.get("/issues", response_model=List[SubmissionIssueOut])
def list_submission_issues(limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)):
    """Answers that could not be stored as submitted."""
    return (
        db.query(SubmissionIssue)
        .order_by(SubmissionIssue.created_at.desc())
        .limit(limit)
        .all()
    )
