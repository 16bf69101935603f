# helpdesk/models/user.py
"""
User model for FastAPI Users with SQLModel.
Combines FastAPI Users base fields with the helpdesk profile fields.
"""

import uuid as uuid_pkg
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from ..utils.timeutils import utcnow


class User(SQLModel, table=True):
    """
    Every person the helpdesk knows about: staff and clients alike.

    FastAPI Users provides minimal required fields:
    - id: UUID (primary key)
    - email: str (unique, indexed)
    - hashed_password: str
    - is_active / is_superuser / is_verified

    Helpdesk fields:
    - name: display name
    - role: admin, technician, technician_n2, user (client) or financial
    - avatar: optional image URL or data URL
    - company: optional company name (derived for ERP-provisioned clients)
    """

    __tablename__ = "users"

    # FastAPI Users required fields
    id: uuid_pkg.UUID = Field(default_factory=uuid_pkg.uuid4, primary_key=True, nullable=False)
    email: str = Field(unique=True, index=True, nullable=False, max_length=320)
    hashed_password: str = Field(nullable=False, max_length=1024)
    is_active: bool = Field(default=True, nullable=False)
    is_superuser: bool = Field(default=False, nullable=False)
    is_verified: bool = Field(default=False, nullable=False)

    # Profile
    name: str = Field(nullable=False, max_length=255)
    role: str = Field(default="user", max_length=50, index=True)
    avatar: Optional[str] = Field(default=None)
    company: Optional[str] = Field(default=None, max_length=255)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
