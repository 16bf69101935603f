# helpdesk/schemas/ticket.py
"""
Service-level schemas for support tickets: inputs, filters and hydrated views.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .user import UserRef


class FileUpload(BaseModel):
    name: str
    size: int = 0
    type: str = "application/octet-stream"
    data_url: str = Field(alias="dataUrl")

    model_config = ConfigDict(populate_by_name=True)


class TicketCreate(BaseModel):
    title: str
    description: str
    priority: str = "media"
    category: str = "suporte"
    created_by: uuid.UUID
    client_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    queue_id: Optional[str] = None  # queue id or name
    files: List[FileUpload] = []


class TicketUpdate(BaseModel):
    """
    Partial update. Only fields that were explicitly sent are applied
    (`model_dump(exclude_unset=True)`), so `assigned_to=None` unassigns and
    `queue_id=None` removes the ticket from its queue.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    queue_id: Optional[str] = None
    updated_by: Optional[uuid.UUID] = None


class TicketFilters(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    assigned_to: Optional[uuid.UUID] = None
    created_by: Optional[uuid.UUID] = None
    queue: Optional[str] = None
    search: Optional[str] = None


class QueueView(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None


class FileView(BaseModel):
    id: uuid.UUID
    name: str
    size: int
    type: str
    data: str


class CommentView(BaseModel):
    id: uuid.UUID
    content: str
    author: Optional[UserRef] = None
    created_at: datetime
    files: List[FileView] = []


class TicketView(BaseModel):
    """Fully hydrated ticket."""

    id: str
    title: str
    description: str
    status: str
    priority: str
    category: str
    created_by: uuid.UUID
    client_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    queue_id: Optional[uuid.UUID] = None
    created_by_user: Optional[UserRef] = None
    assigned_to_user: Optional[UserRef] = None
    client_user: Optional[UserRef] = None
    queue: Optional[QueueView] = None
    files: List[FileView] = []
    comments: List[CommentView] = []
    created_at: datetime
    updated_at: datetime
