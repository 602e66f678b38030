"""Agency-managed tenants: branding and notification destinations."""
from sqlalchemy import Column, String, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from formdesk.core.database import Base
from formdesk.models._ids import new_id


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)

    # Branding
    logo_url = Column(String, nullable=True)
    primary_color = Column(String, nullable=True)

    # Notification destinations
    client_email = Column(String, nullable=True)
    additional_emails = Column(JSON, default=list)
    email_notifications_enabled = Column(Boolean, default=True)
    webhook_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    forms = relationship("Form", back_populates="client")

    @property
    def email_recipients(self) -> list:
        """Raw configured recipients, primary first. Validation happens at send time."""
        recipients = []
        if self.client_email and self.client_email.strip():
            recipients.append(self.client_email.strip())
        for email in self.additional_emails or []:
            if email and email.strip():
                recipients.append(email.strip())
        return recipients
