# helpdesk/api/settings/models.py
from typing import List, Optional

from pydantic import BaseModel


class ErpSettingsRequest(BaseModel):
    """Fields left out are kept; an empty string clears the stored value."""

    api_key: Optional[str] = None
    system_user_email: Optional[str] = None
    allowed_types: Optional[List[str]] = None


class ErpSettingsResponse(BaseModel):
    api_key: Optional[str] = None
    api_key_configured: bool
    system_user_email: Optional[str] = None
    allowed_types: List[str]
