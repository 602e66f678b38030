"""HTTP-level tests for the public, Zapier and operator routers."""
import base64
from unittest.mock import patch

import pytest

from conftest import API_KEY, USER_ID
from formdesk.core.config import settings
from formdesk.core.security import generate_api_key
from formdesk.models import (
    EmailNotification, Response, ResponseAnswer, UserSettings, WebhookNotification,
)
from formdesk.schemas.answers import TextAnswer
from formdesk.services.submission import ResponseSubmissionWriter

# pylint: disable=unused-argument, disable=redefined-outer-name

WEBHOOK_POST = "formdesk.services.webhook_delivery.requests.post"
EMAIL_POST = "formdesk.services.response_email.requests.post"


@pytest.fixture
def quote_form(make_client, make_form):
    client = make_client(logo_url="http://logo.test/acme.png", primary_color="#ff0000")
    return make_form(client, [
        ("sp_short_text", "Name", True),
        ("sp_email", "Email", True),
        ("sp_dropdown", "Product", False, {"options": ["Sash window", "Door"]}),
        ("sp_file_upload", "Plans", False, {"max_file_size": 1}),
    ])


def _answers(**overrides):
    answers = {
        "0": {"type": "text", "value": "Jo Bloggs"},
        "1": {"type": "text", "value": "jo@example.com"},
    }
    answers.update(overrides)
    return {"answers": answers}


def test_health(http):
    resp = http.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_public_form(http, quote_form):
    resp = http.get(f"/api/public/forms/{quote_form.id}")
    assert resp.status_code == 200

    body = resp.json()
    assert body["name"] == "Quote Request"
    assert body["client"]["name"] == "Acme Windows"
    assert body["client"]["primary_color"] == "#ff0000"
    assert [f["field_type"] for f in body["fields"]] == [
        "sp_short_text", "sp_email", "sp_dropdown", "sp_file_upload",
    ]
    assert [o["label"] for o in body["fields"][2]["options"]] == ["Sash window", "Door"]


def test_public_form_not_found(http, db):
    resp = http.get("/api/public/forms/missing")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Form not found"


def test_multi_step_form_is_rejected(http, make_form):
    form = make_form(None, [], form_type="multi_step")
    assert http.get(f"/api/public/forms/{form.id}").status_code == 400


def test_submit_response(http, db, quote_form):
    resp = http.post(
        f"/api/public/forms/{quote_form.id}/responses",
        json=_answers(**{"2": {"type": "options", "values": ["Door"]}}),
    )
    assert resp.status_code == 200

    body = resp.json()
    assert body["success"] is True
    response = db.get(Response, body["response_id"])
    assert response.contact_name == "Jo Bloggs"
    assert response.contact_email == "jo@example.com"
    assert db.query(ResponseAnswer).count() == 3
    assert db.query(WebhookNotification).count() == 1


def test_submit_with_uploaded_file(http, db, quote_form, storage):
    content = base64.b64encode(b"%PDF-1.4 plans").decode()
    resp = http.post(
        f"/api/public/forms/{quote_form.id}/responses",
        json=_answers(**{"3": {"type": "file", "file_name": "plans.pdf", "content": content}}),
    )
    assert resp.status_code == 200

    answer = (
        db.query(ResponseAnswer)
        .filter(ResponseAnswer.file_name == "plans.pdf")
        .one()
    )
    assert answer.file_url.startswith("http://files.test/responses/")
    assert answer.file_size == len(b"%PDF-1.4 plans")
    assert answer.answer_text == answer.file_url


def test_submit_missing_required_reports_first_error(http, db, quote_form):
    resp = http.post(
        f"/api/public/forms/{quote_form.id}/responses",
        json={"answers": {"1": {"type": "text", "value": ""}}},
    )
    assert resp.status_code == 422

    detail = resp.json()["detail"]
    assert detail["first_error_index"] == 0
    assert set(detail["errors"]) == {"0", "1"}
    assert db.query(Response).count() == 0


def test_submit_wrong_answer_type(http, db, quote_form):
    resp = http.post(
        f"/api/public/forms/{quote_form.id}/responses",
        json=_answers(**{"2": {"type": "text", "value": "Door"}}),
    )
    assert resp.status_code == 422
    assert db.query(Response).count() == 0


def test_submit_to_form_with_broken_field_list(http, db, make_form):
    form = make_form(None, [("sp_multiple_choice", "Colour", True)])
    resp = http.post(f"/api/public/forms/{form.id}/responses", json={"answers": {}})
    assert resp.status_code == 400
    assert db.query(Response).count() == 0


def test_submit_to_unknown_form(http, db):
    resp = http.post("/api/public/forms/missing/responses", json={"answers": {}})
    assert resp.status_code == 404


def test_field_catalog(http):
    resp = http.get("/api/fields/catalog")
    assert resp.status_code == 200

    categories = resp.json()["categories"]
    assert categories[0]["category"] == "Contact Info"
    kinds = [f["type"] for c in categories for f in c["fields"]]
    assert "sp_statement" in kinds
    assert len(kinds) == len(set(kinds))


def test_generated_api_key_has_prefix():
    key = generate_api_key()
    assert key.startswith(settings.API_KEY_PREFIX)
    assert key != generate_api_key()


def test_list_forms(http, db, api_user, quote_form, make_form, storage):
    make_form(None, [], name="Someone else's form", user_id="user-2")
    ResponseSubmissionWriter(db, storage).submit(quote_form, {
        0: TextAnswer(value="Jo"),
        1: TextAnswer(value="jo@example.com"),
    })

    resp = http.get("/api/forms", params={"api_key": API_KEY})
    assert resp.status_code == 200

    body = resp.json()
    assert body["success"] is True
    assert [f["name"] for f in body["forms"]] == ["Quote Request"]
    assert body["forms"][0]["total_responses"] == 1


@pytest.mark.parametrize("api_key", [None, "wrong_prefix_key", "dk_live_unknown"])
def test_list_forms_rejects_bad_keys(http, api_user, api_key):
    params = {"api_key": api_key} if api_key else {}
    resp = http.get("/api/forms", params=params)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid API key"


def test_list_forms_requires_zapier(http, db):
    db.add(UserSettings(user_id=USER_ID, api_key=API_KEY, zapier_enabled=False))
    db.commit()

    resp = http.get("/api/forms", params={"api_key": API_KEY})
    assert resp.status_code == 403


def test_recent_responses(http, db, api_user, quote_form, storage):
    writer = ResponseSubmissionWriter(db, storage)
    for name in ("First", "Second", "Third"):
        writer.submit(quote_form, {0: TextAnswer(value=name), 1: TextAnswer(value="jo@example.com")})

    resp = http.get(
        f"/api/forms/{quote_form.id}/responses/recent",
        params={"api_key": API_KEY, "limit": 2},
    )
    assert resp.status_code == 200

    body = resp.json()
    assert len(body) == 2
    assert all(item["form_id"] == quote_form.id for item in body)
    assert all(item["contact"]["email"] == "jo@example.com" for item in body)


def test_recent_responses_for_other_users_form(http, api_user, make_form):
    form = make_form(None, [], user_id="user-2")
    resp = http.get(f"/api/forms/{form.id}/responses/recent", params={"api_key": API_KEY})
    assert resp.status_code == 404


def test_recent_responses_limit_bounds(http, api_user, quote_form):
    resp = http.get(
        f"/api/forms/{quote_form.id}/responses/recent",
        params={"api_key": API_KEY, "limit": 101},
    )
    assert resp.status_code == 422


def test_subscribe(http, api_user, quote_form):
    resp = http.post("/api/webhooks/subscribe", json={
        "target_url": "https://hooks.zapier.test/other",
        "form_id": quote_form.id,
        "api_key": API_KEY,
    })
    assert resp.status_code == 200

    body = resp.json()
    assert body["success"] is True
    assert body["client_name"] == "Acme Windows"
    assert body["webhook_url"] == quote_form.client.webhook_url


def test_subscribe_missing_parameters(http, api_user):
    resp = http.post("/api/webhooks/subscribe", json={"target_url": "https://x.test"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing required parameters: form_id and api_key"


def test_subscribe_bad_key(http, api_user, quote_form):
    resp = http.post("/api/webhooks/subscribe", json={"form_id": quote_form.id, "api_key": "dk_live_nope"})
    assert resp.status_code == 401


def test_subscribe_unknown_form(http, api_user):
    resp = http.post("/api/webhooks/subscribe", json={"form_id": "missing", "api_key": API_KEY})
    assert resp.status_code == 404


def test_subscribe_without_client_webhook(http, api_user, make_client, make_form):
    form = make_form(make_client(webhook_url=None), [])
    resp = http.post("/api/webhooks/subscribe", json={"form_id": form.id, "api_key": API_KEY})
    assert resp.status_code == 400
    assert "No webhook URL configured" in resp.json()["detail"]


def test_unsubscribe(http, api_user, quote_form):
    resp = http.request("DELETE", "/api/webhooks/unsubscribe", json={
        "target_url": "https://hooks.zapier.test/other",
        "form_id": quote_form.id,
        "api_key": API_KEY,
    })
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert quote_form.client.webhook_url


def test_process_webhooks_endpoint(http, db, quote_form, storage, fake_response):
    ResponseSubmissionWriter(db, storage).submit(quote_form, {
        0: TextAnswer(value="Jo"),
        1: TextAnswer(value="jo@example.com"),
    })

    with patch(WEBHOOK_POST, return_value=fake_response(200)):
        resp = http.post("/api/notifications/webhooks/process")

    assert resp.status_code == 200
    assert resp.json()["successful"] == 1
    assert db.query(WebhookNotification).one().status == "sent"


def test_send_email_endpoint(http, db, make_client, make_form, storage, fake_response):
    client = make_client(webhook_url=None, email_notifications_enabled=True, client_email="owner@acme.test")
    form = make_form(client, [("sp_short_text", "Name", False)])
    response = ResponseSubmissionWriter(db, storage).submit(form, {0: TextAnswer(value="Jo")})

    with patch(EMAIL_POST, return_value=fake_response(201)):
        resp = http.post(f"/api/notifications/emails/{response.id}/send")

    assert resp.status_code == 200
    assert resp.json()["status"] == "sent"
    assert db.query(EmailNotification).one().status == "sent"


def test_send_email_for_unknown_response(http, db):
    resp = http.post("/api/notifications/emails/missing/send")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Response not found"


def test_test_webhook_endpoint(http, db, fake_response):
    with patch(WEBHOOK_POST, return_value=fake_response(200)) as mock_post:
        resp = http.post("/api/notifications/webhooks/test", json={"url": "https://hooks.test/x"})

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert mock_post.call_args.args[0] == "https://hooks.test/x"


def test_list_notifications(http, db, quote_form, storage):
    ResponseSubmissionWriter(db, storage).submit(quote_form, {
        0: TextAnswer(value="Jo"),
        1: TextAnswer(value="jo@example.com"),
    })

    resp = http.get("/api/notifications", params={"channel": "webhook", "status": "pending"})
    assert resp.status_code == 200

    items = resp.json()
    assert len(items) == 1
    assert items[0]["channel"] == "webhook"
    assert items[0]["target"] == quote_form.client.webhook_url

    assert http.get("/api/notifications", params={"channel": "sms"}).status_code == 422


def test_release_stale_endpoint(http, db):
    resp = http.post("/api/notifications/release-stale")
    assert resp.status_code == 200
    assert resp.json() == {"released": {"webhook": 0, "email": 0}}


def test_operator_token_enforced(http, db, monkeypatch):
    monkeypatch.setattr(settings, "OPERATOR_TOKEN", "s3cret")

    assert http.get("/api/notifications/issues").status_code == 401
    resp = http.get("/api/notifications/issues", headers={"X-Operator-Token": "s3cret"})
    assert resp.status_code == 200
    assert resp.json() == []
