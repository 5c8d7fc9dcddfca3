from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class Package(SQLModel, table=True):
    __tablename__ = "packages"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, unique=True)
    price: float = Field(default=0.0)
    description: str | None = Field(default=None)
    channels: int = Field(default=0)
    features: list[Any] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = Field(default=True)
