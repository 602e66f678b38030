from formdesk.models.user_settings import UserSettings
from formdesk.models.client import Client
from formdesk.models.form import Form, FormStep, FormOption
from formdesk.models.response import Response, ResponseAnswer, ResponseFrame, SubmissionIssue
from formdesk.models.notification import (
    NotificationStatus, WebhookNotification, EmailNotification, WebhookDeliveryLog,
)

__all__ = [
    "UserSettings",
    "Client",
    "Form",
    "FormStep",
    "FormOption",
    "Response",
    "ResponseAnswer",
    "ResponseFrame",
    "SubmissionIssue",
    "NotificationStatus",
    "WebhookNotification",
    "EmailNotification",
    "WebhookDeliveryLog",
]
