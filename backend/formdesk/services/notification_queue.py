"""Status bookkeeping shared by the webhook and email workers.

A job moves pending -> processing -> sent | failed | pending. The move into
processing is a conditional UPDATE, so two workers racing on the same job
cannot both win it.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from formdesk.core.config import settings
from formdesk.models.notification import (
    EmailNotification, NotificationStatus, WebhookNotification,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def claim(db: Session, model, job_id: str, counter=None, max_count: Optional[int] = None) -> bool:
    """Flip one pending job to processing. True only if this caller won it."""
    query = db.query(model).filter(
        model.id == job_id,
        model.status == NotificationStatus.PENDING.value,
    )
    if counter is not None and max_count is not None:
        query = query.filter(counter < max_count)

    updated = query.update(
        {
            model.status: NotificationStatus.PROCESSING.value,
            model.claimed_at: utcnow(),
        },
        synchronize_session=False,
    )
    db.commit()
    return updated == 1


def release_stale_claims(db: Session, timeout_seconds: Optional[int] = None) -> dict:
    """Put processing jobs claimed longer ago than the timeout back to pending.

    Counters are left alone; a crashed worker does not cost the job an attempt.
    """
    timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.CLAIM_TIMEOUT_SECONDS
    cutoff = utcnow() - timedelta(seconds=timeout_seconds)

    released = {}
    for channel, model in (("webhook", WebhookNotification), ("email", EmailNotification)):
        released[channel] = (
            db.query(model)
            .filter(
                model.status == NotificationStatus.PROCESSING.value,
                model.claimed_at < cutoff,
            )
            .update(
                {model.status: NotificationStatus.PENDING.value, model.claimed_at: None},
                synchronize_session=False,
            )
        )
    db.commit()

    if any(released.values()):
        logger.warning("Released stale notification claims: %s", released)
    return released
