"""Notification queue tables drained by the delivery workers."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON
from sqlalchemy.sql import func
from formdesk.core.database import Base
from formdesk.models._ids import new_id
import enum


class NotificationStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"


class WebhookNotification(Base):
    __tablename__ = "webhook_notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    response_id = Column(String(36), ForeignKey("responses.id", ondelete="CASCADE"), nullable=False, index=True)
    webhook_url = Column(String, nullable=True)
    payload = Column(JSON, nullable=True)  # filled at first delivery attempt

    status = Column(String, default=NotificationStatus.PENDING.value, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)

    claimed_at = Column(DateTime(timezone=True), nullable=True)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class EmailNotification(Base):
    __tablename__ = "email_notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    response_id = Column(String(36), ForeignKey("responses.id", ondelete="CASCADE"), nullable=False, index=True)
    recipients = Column(JSON, default=list)

    status = Column(String, default=NotificationStatus.PENDING.value, nullable=False, index=True)
    retry_count = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)

    claimed_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class WebhookDeliveryLog(Base):
    """Audit trail of every outbound webhook call."""
    __tablename__ = "webhook_delivery_logs"

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(String(36), nullable=True, index=True)
    response_id = Column(String(36), nullable=True, index=True)
    webhook_url = Column(String, nullable=True)
    payload = Column(JSON, nullable=True)
    response_status = Column(Integer, nullable=True)
    response_body = Column(Text, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
