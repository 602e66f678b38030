"""Zapier-facing form endpoints: form list for the trigger dropdown and the polling fallback."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from formdesk.api.deps import resolve_api_user
from formdesk.core.database import get_db
from formdesk.models.form import Form
from formdesk.models.response import Response
from formdesk.services.webhook_delivery import build_payload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/forms", tags=["zapier"])


@router.get("")
def list_forms(api_key: Optional[str] = None, db: Session = Depends(get_db)):
    user_settings = resolve_api_user(db, api_key, require_zapier=True)

    counts = dict(
        db.query(Response.form_id, func.count(Response.id))
        .join(Form, Form.id == Response.form_id)
        .filter(Form.user_id == user_settings.user_id)
        .group_by(Response.form_id)
        .all()
    )
    forms = (
        db.query(Form)
        .filter(Form.user_id == user_settings.user_id)
        .order_by(Form.created_at.desc())
        .all()
    )
    return {
        "success": True,
        "forms": [
            {
                "id": f.id,
                "name": f.name,
                "created_at": f.created_at.isoformat() if f.created_at else None,
                "total_responses": counts.get(f.id, 0),
            }
            for f in forms
        ],
    }


@router.get("/{form_id}/responses/recent")
def recent_responses(
    form_id: str,
    api_key: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Polling fallback for Zapier: newest responses first, same shape as the webhook body."""
    user_settings = resolve_api_user(db, api_key, require_zapier=True)

    form = db.query(Form).filter(Form.id == form_id, Form.user_id == user_settings.user_id).first()
    if not form:
        raise HTTPException(status_code=404, detail="Form not found or access denied")

    responses = (
        db.query(Response)
        .filter(Response.form_id == form.id)
        .order_by(Response.submitted_at.desc(), Response.id.desc())
        .limit(limit)
        .all()
    )
    return [build_payload(r) for r in responses]
