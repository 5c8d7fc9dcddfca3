"""
Back-office staff account.

The first block of columns is what fastapi-users requires; the rest is
what the billing screens need. `display_name` is the name written on
receipts (collected_by), bills and VC history entries.
"""
import uuid as uuid_pkg

from sqlmodel import Field, SQLModel

from ..core.constants import UserRole


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid_pkg.UUID = Field(default_factory=uuid_pkg.uuid4, primary_key=True, nullable=False)
    email: str = Field(unique=True, index=True, nullable=False, max_length=320)
    hashed_password: str = Field(nullable=False, max_length=1024)
    is_active: bool = Field(default=True, nullable=False)
    is_superuser: bool = Field(default=False, nullable=False)
    is_verified: bool = Field(default=False, nullable=False)

    username: str = Field(index=True, unique=True, nullable=False, max_length=100)
    full_name: str | None = Field(default=None, max_length=200)
    role: UserRole = Field(default=UserRole.EMPLOYEE)
    # Area label the employee collects in; matches Customer.collector_name
    collector_name: str | None = Field(default=None, max_length=100)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username
