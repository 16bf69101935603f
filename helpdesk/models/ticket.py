# helpdesk/models/ticket.py
"""
Support ticket models: queues, tickets, comments and attached files.
"""

import uuid as uuid_pkg
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ..utils.timeutils import utcnow


class Queue(SQLModel, table=True):
    """Named routing bucket (e.g. "Suporte N1", "Suporte N2")."""

    __tablename__ = "queues"

    id: uuid_pkg.UUID = Field(default_factory=uuid_pkg.uuid4, primary_key=True)
    name: str = Field(unique=True, index=True, nullable=False)
    description: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class Ticket(SQLModel, table=True):
    """
    Represents a support ticket.
    `id` is the human readable sequence ("00007"); it is allocated once and never changes.
    """

    __tablename__ = "tickets"

    id: str = Field(primary_key=True, max_length=32)
    title: str = Field(nullable=False)
    description: str = Field(nullable=False)
    status: str = Field(default="aberto", index=True)
    priority: str = Field(default="media")
    category: str = Field(default="suporte")

    # No FK constraints on user references: a deleted user leaves a dangling id
    # that the resolver renders as a placeholder.
    created_by: uuid_pkg.UUID = Field(index=True)
    client_id: Optional[uuid_pkg.UUID] = Field(default=None, index=True)
    assigned_to: Optional[uuid_pkg.UUID] = Field(default=None, index=True)
    queue_id: Optional[uuid_pkg.UUID] = Field(default=None, foreign_key="queues.id", index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)


class Comment(SQLModel, table=True):
    """Immutable interaction on a ticket; removed only together with its ticket."""

    __tablename__ = "comments"

    id: uuid_pkg.UUID = Field(default_factory=uuid_pkg.uuid4, primary_key=True)
    ticket_id: str = Field(foreign_key="tickets.id", index=True)
    author_id: Optional[uuid_pkg.UUID] = Field(default=None)
    content: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow)


class TicketFile(SQLModel, table=True):
    """
    File attached to a ticket. When `comment_id` is set the file belongs to
    that comment, otherwise to the ticket itself.
    """

    __tablename__ = "ticket_files"

    id: uuid_pkg.UUID = Field(default_factory=uuid_pkg.uuid4, primary_key=True)
    ticket_id: str = Field(foreign_key="tickets.id", index=True)
    comment_id: Optional[uuid_pkg.UUID] = Field(default=None, foreign_key="comments.id", index=True)
    name: str = Field(nullable=False)
    size: int = Field(default=0)
    type: str = Field(default="application/octet-stream")
    data_url: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow)
