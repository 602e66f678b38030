from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class WebhookSubscription(BaseModel):
    target_url: Optional[str] = None
    form_id: Optional[str] = None
    api_key: Optional[str] = None


class WebhookTest(BaseModel):
    url: str
    payload: Optional[dict] = None


class NotificationOut(BaseModel):
    id: str
    channel: str
    response_id: str
    status: str
    attempts: int
    error_message: Optional[str] = None
    target: Optional[str] = None
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
