import secrets
from typing import Optional

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from formdesk.core.config import settings
from formdesk.core.exceptions import IntegrationDisabled, InvalidApiKey
from formdesk.models.user_settings import UserSettings


def generate_api_key() -> str:
    return f"{settings.API_KEY_PREFIX}{secrets.token_hex(24)}"


def get_api_user_settings(db: Session, api_key: Optional[str], require_zapier: bool = False) -> UserSettings:
    """Resolve an integration API key to its owner's settings row."""
    if not api_key or not api_key.startswith(settings.API_KEY_PREFIX):
        raise InvalidApiKey("Invalid API key")

    user_settings = db.query(UserSettings).filter(UserSettings.api_key == api_key).first()
    if not user_settings:
        raise InvalidApiKey("Invalid API key")

    if require_zapier and not user_settings.zapier_enabled:
        raise IntegrationDisabled("Zapier integration not enabled")
    return user_settings


def require_operator(x_operator_token: Optional[str] = Header(None)):
    """Dependency guarding the operator endpoints when OPERATOR_TOKEN is set."""
    if not settings.OPERATOR_TOKEN:
        return
    if not x_operator_token or not secrets.compare_digest(x_operator_token, settings.OPERATOR_TOKEN):
        raise HTTPException(status_code=401, detail="Invalid operator token")
