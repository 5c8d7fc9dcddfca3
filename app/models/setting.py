from datetime import datetime

from sqlmodel import Field, SQLModel

from ..core.timeutils import utcnow


class Setting(SQLModel, table=True):
    """Key/value store for runtime settings such as the auto-billing document."""

    __tablename__ = "settings"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime | None = Field(default_factory=utcnow)
    updated_by: str | None = Field(default=None)
