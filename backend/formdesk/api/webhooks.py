"""Zapier REST hook subscribe/unsubscribe.

Deliveries always go to the client's configured webhook_url; subscribing only
confirms that one is set for the form's client.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from formdesk.api.deps import resolve_api_user
from formdesk.core.database import get_db
from formdesk.models.form import Form
from formdesk.schemas.integration import WebhookSubscription

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["zapier"])


def _owned_form(db: Session, body: WebhookSubscription) -> Form:
    if not body.form_id or not body.api_key:
        raise HTTPException(status_code=400, detail="Missing required parameters: form_id and api_key")

    user_settings = resolve_api_user(db, body.api_key)
    form = db.query(Form).filter(Form.id == body.form_id, Form.user_id == user_settings.user_id).first()
    if not form:
        raise HTTPException(status_code=404, detail="Form not found or access denied")
    return form


@router.post("/subscribe")
def subscribe(body: WebhookSubscription, db: Session = Depends(get_db)):
    form = _owned_form(db, body)
    client = form.client
    webhook_url = client.webhook_url if client else None
    if not webhook_url:
        raise HTTPException(
            status_code=400,
            detail="No webhook URL configured for this client. Please set a webhook URL in the client settings.",
        )

    logger.info("Webhook subscription confirmed for form %s (target %s)", form.id, body.target_url)
    return {
        "success": True,
        "message": "Webhook subscription confirmed. Responses will be sent to client webhook URL.",
        "client_name": client.name,
        "webhook_url": webhook_url,
    }


@router.delete("/unsubscribe")
def unsubscribe(body: WebhookSubscription, db: Session = Depends(get_db)):
    form = _owned_form(db, body)
    logger.info("Webhook unsubscribed for form %s (target %s)", form.id, body.target_url)
    return {
        "success": True,
        "message": "Webhook unsubscribed successfully. Client webhook URL will no longer receive notifications.",
    }
