# helpdesk/schemas/user.py
"""
Pydantic schemas for users.
UserRead/UserCreate control what FastAPI Users sends and receives;
ResolvedUser/DanglingUser are the hydrated user references embedded in ticket views.
"""
import uuid
from typing import Annotated, Literal, Optional, Union

from fastapi_users import schemas
from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import MISSING_USER_NAME


class UserRead(schemas.BaseUser[uuid.UUID]):
    """
    Schema for reading user data (API responses).
    """

    name: str
    role: str
    avatar: Optional[str] = None
    company: Optional[str] = None


class UserCreate(schemas.BaseUserCreate):
    """
    Schema for creating new users.
    """

    name: str
    role: str = "user"
    avatar: Optional[str] = None
    company: Optional[str] = None


class ResolvedUser(BaseModel):
    """A user reference whose row exists."""

    model_config = ConfigDict(from_attributes=True)

    kind: Literal["resolved"] = "resolved"
    id: uuid.UUID
    name: str
    email: str
    role: str
    avatar: Optional[str] = None


class DanglingUser(BaseModel):
    """
    Stand-in for a user id whose row no longer exists.
    Shaped like ResolvedUser so clients can render it, tagged so they can tell it apart.
    """

    kind: Literal["dangling"] = "dangling"
    id: uuid.UUID
    name: str = MISSING_USER_NAME
    email: str = ""
    role: str = "user"
    avatar: Optional[str] = None


UserRef = Annotated[Union[ResolvedUser, DanglingUser], Field(discriminator="kind")]
