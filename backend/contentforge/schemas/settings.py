"""Schemas for backend connection settings."""
from typing import Optional

from pydantic import BaseModel


class BackendSettingsUpdate(BaseModel):
    """Connection parameters entered by the user."""
    url: str
    key: str


class BackendSettingsResponse(BaseModel):
    url: Optional[str] = None
    key_configured: bool
    backend: str
