# helpdesk/api/tickets/models.py
import uuid as uuid_pkg
from typing import List, Optional

from pydantic import BaseModel, Field

from ...schemas.ticket import FileUpload


class TicketCreateRequest(BaseModel):
    title: str
    description: str
    priority: str = "media"
    category: str = "suporte"
    client_id: Optional[uuid_pkg.UUID] = None
    assigned_to: Optional[uuid_pkg.UUID] = None
    queue_id: Optional[str] = None
    files: List[FileUpload] = []


class TicketUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    client_id: Optional[uuid_pkg.UUID] = None
    assigned_to: Optional[uuid_pkg.UUID] = None
    queue_id: Optional[str] = None


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1)
    files: List[FileUpload] = []
