# app/api/setup/main.py
"""
First-run API for creating the initial admin user.
Only active while the user table is empty.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi_users import InvalidPasswordException
from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.constants import UserRole
from app.core.users import UserManager, get_user_manager
from app.db.engine import get_session
from app.models.user import User
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Setup"])


class SetupRequest(BaseModel):
    """Request body for creating the first admin user."""

    username: str
    email: str
    password: str
    full_name: str | None = None

    @field_validator("username")
    @classmethod
    def username_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Username cannot be empty.")
        return v.strip()


async def _is_system_setup(session: AsyncSession) -> bool:
    """Check if any user exists in the database."""
    result = await session.execute(select(User).limit(1))
    return result.scalar_one_or_none() is not None


@router.get("/setup/status")
async def setup_status(session: AsyncSession = Depends(get_session)):
    return {"configured": await _is_system_setup(session)}


@router.post("/setup", status_code=status.HTTP_201_CREATED)
async def create_first_admin(
    request_body: SetupRequest,
    session: AsyncSession = Depends(get_session),
    user_manager: UserManager = Depends(get_user_manager),
):
    """
    Create the first admin user.
    This endpoint is only active if no users exist.
    """
    if await _is_system_setup(session):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The system is already configured. Create further users from /api/users.",
        )

    user_create = UserCreate(
        email=request_body.email,
        username=request_body.username,
        password=request_body.password,
        full_name=request_body.full_name,
        role=UserRole.ADMIN,
        is_superuser=True,
        is_active=True,
        is_verified=True,
    )
    try:
        await user_manager.create(user_create)
    except InvalidPasswordException as e:
        raise HTTPException(status_code=400, detail=e.reason)
    except Exception as e:
        logger.error(f"[Setup] Failed to create admin: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating the user: {e}",
        )
    logger.info(f"[Setup] First admin user created: {request_body.username}")
    return {"status": "ok", "message": "Administrator created."}
