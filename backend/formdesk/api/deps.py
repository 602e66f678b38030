"""Shared request plumbing for the routers."""
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from formdesk.core.exceptions import IntegrationDisabled, InvalidApiKey
from formdesk.core.security import get_api_user_settings
from formdesk.models.user_settings import UserSettings
from formdesk.services.storage import LocalFileStorage


def resolve_api_user(db: Session, api_key: Optional[str], require_zapier: bool = False) -> UserSettings:
    try:
        return get_api_user_settings(db, api_key, require_zapier=require_zapier)
    except InvalidApiKey as e:
        raise HTTPException(status_code=401, detail=str(e))
    except IntegrationDisabled as e:
        raise HTTPException(status_code=403, detail=str(e))


def get_storage() -> LocalFileStorage:
    return LocalFileStorage()
