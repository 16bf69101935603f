from datetime import datetime

from sqlmodel import Field, SQLModel

from ..utils.timeutils import utcnow


class Setting(SQLModel, table=True):
    """Key/value store for runtime configuration (ERP integration secrets, etc.)."""

    __tablename__ = "settings"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=utcnow)
