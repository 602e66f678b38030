"""Pytest fixtures for FormDesk tests.

Every test gets a fresh in-memory SQLite schema. Outbound HTTP is never made:
tests patch `requests.post` in the module under test.
"""
import os

# Settings are read at import time, so these must be set before formdesk loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BREVO_API_KEY"] = "test-brevo-key"
os.environ["NOTIFICATION_POLL_INTERVAL"] = "0"
os.environ.pop("OPERATOR_TOKEN", None)

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

import formdesk.models  # noqa: F401
from formdesk.api.deps import get_storage
from formdesk.core.database import Base, SessionLocal, engine, get_db
from formdesk.main import app
from formdesk.models import Client, Form, FormOption, FormStep, UserSettings
from formdesk.services.storage import LocalFileStorage

# pylint cannot differentiate the use of fixtures in the test functions
# pylint: disable=unused-argument, disable=redefined-outer-name

USER_ID = "user-1"
API_KEY = "dk_live_test_key_0001"
WEBHOOK_URL = "https://hooks.zapier.test/catch/123/abc"


@pytest.fixture
def db():
    """A session on a freshly created schema, dropped after the test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(upload_dir=str(tmp_path), public_base_url="http://files.test")


@pytest.fixture
def make_client(db):
    """Factory for clients; defaults to webhook on, email off."""

    def _make(**overrides) -> Client:
        values = {
            "user_id": USER_ID,
            "name": "Acme Windows",
            "client_email": None,
            "additional_emails": [],
            "email_notifications_enabled": False,
            "webhook_url": WEBHOOK_URL,
        }
        values.update(overrides)
        client = Client(**values)
        db.add(client)
        db.commit()
        return client

    return _make


@pytest.fixture
def make_form(db):
    """Factory for single-page forms.

    fields is a list of (kind, title, required) or (kind, title, required, extra)
    tuples; extra may carry "options" (labels) and any FormStep column.
    """

    def _make(client=None, fields=(), name="Quote Request", user_id=USER_ID,
              contact_field_map=None, form_type="single_page") -> Form:
        form = Form(
            user_id=user_id,
            client_id=client.id if client else None,
            name=name,
            form_type=form_type,
            contact_field_map=contact_field_map,
        )
        for order, field in enumerate(fields):
            kind, title, required = field[:3]
            extra = dict(field[3]) if len(field) > 3 else {}
            option_labels = extra.pop("options", [])
            step = FormStep(
                title=title,
                question_type=kind,
                is_required=required,
                step_order=order,
                **extra,
            )
            for i, label in enumerate(option_labels):
                step.options.append(FormOption(label=label, option_order=i))
            form.steps.append(step)
        db.add(form)
        db.commit()
        return form

    return _make


@pytest.fixture
def api_user(db) -> UserSettings:
    user_settings = UserSettings(user_id=USER_ID, api_key=API_KEY, zapier_enabled=True)
    db.add(user_settings)
    db.commit()
    return user_settings


@pytest.fixture
def http(db, storage):
    """TestClient sharing the test's session; lifespan is not run."""

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def fake_response():
    """Factory for stand-ins of requests.Response."""

    def _make(status_code=200, text="ok", json_data=None):
        resp = MagicMock()
        resp.status_code = status_code
        resp.text = text
        resp.json.return_value = json_data if json_data is not None else {}
        return resp

    return _make
