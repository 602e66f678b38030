"""Per-user integration settings (API key for Zapier and the public API)."""
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.sql import func
from formdesk.core.database import Base
from formdesk.models._ids import new_id


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, unique=True, index=True)
    api_key = Column(String, nullable=True, unique=True, index=True)  # dk_live_...
    zapier_enabled = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
