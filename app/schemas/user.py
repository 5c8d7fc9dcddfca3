"""
Staff account schemas for fastapi-users and the /api/users admin endpoints.
"""
import uuid
from typing import Optional

from fastapi_users import schemas

from ..core.constants import UserRole


class UserRead(schemas.BaseUser[uuid.UUID]):
    username: str
    full_name: Optional[str] = None
    role: UserRole
    collector_name: Optional[str] = None
    # name stamped on receipts, bills and VC history
    display_name: str


class UserCreate(schemas.BaseUserCreate):
    username: str
    full_name: Optional[str] = None
    role: UserRole = UserRole.EMPLOYEE
    collector_name: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    collector_name: Optional[str] = None
