"""Worker entry points: Celery tasks and the in-process poller."""
from datetime import timedelta
from unittest.mock import patch

from formdesk.celery_app import celery_app
from formdesk.models import EmailNotification, WebhookNotification
from formdesk.schemas.answers import TextAnswer
from formdesk.services.notification_queue import utcnow
from formdesk.services.submission import ResponseSubmissionWriter
from formdesk.tasks import async_tasks, poller

# pylint: disable=unused-argument, disable=redefined-outer-name

WEBHOOK_POST = "formdesk.services.webhook_delivery.requests.post"
EMAIL_POST = "formdesk.services.response_email.requests.post"


def _submit(db, make_client, make_form, storage):
    client = make_client(email_notifications_enabled=True, client_email="owner@acme.test")
    form = make_form(client, [("sp_short_text", "Name", True)])
    response_id = ResponseSubmissionWriter(db, storage).submit(form, {0: TextAnswer(value="Jo")}).id
    # workers open their own session on the shared connection
    db.commit()
    return response_id


def test_beat_schedule_covers_every_queue():
    tasks = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}
    assert tasks == {"process_pending_webhooks", "process_pending_emails", "release_stale_claims"}


def test_webhook_task_delivers(db, make_client, make_form, storage, fake_response):
    _submit(db, make_client, make_form, storage)

    with patch(WEBHOOK_POST, return_value=fake_response(200)):
        stats = async_tasks.process_pending_webhooks()

    assert stats["successful"] == 1
    assert db.query(WebhookNotification).one().status == "sent"


def test_email_task_sends_one_response(db, make_client, make_form, storage, fake_response):
    response_id = _submit(db, make_client, make_form, storage)

    with patch(EMAIL_POST, return_value=fake_response(201)) as mock_post:
        result = async_tasks.send_response_email(response_id)

    assert result["status"] == "sent"
    mock_post.assert_called_once()
    assert db.query(EmailNotification).one().status == "sent"


def test_poller_pass_releases_then_delivers(db, make_client, make_form, storage, fake_response):
    _submit(db, make_client, make_form, storage)
    job = db.query(WebhookNotification).one()
    job.status = "processing"
    job.claimed_at = utcnow() - timedelta(hours=1)
    db.commit()

    with patch(WEBHOOK_POST, return_value=fake_response(200)), \
            patch(EMAIL_POST, return_value=fake_response(201)):
        result = poller.run_once()

    assert result["released"] == {"webhook": 1, "email": 0}
    assert result["webhooks"]["successful"] == 1
    assert result["emails"]["successful"] == 1

    db.expire_all()
    assert db.query(WebhookNotification).one().status == "sent"
    assert db.query(EmailNotification).one().status == "sent"
