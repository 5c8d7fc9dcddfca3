# app/core/users.py
"""
Staff authentication (fastapi-users) and role checks.

Two transports share one JWT strategy: a bearer token for API clients and
an HTTP-only cookie for the back-office UI. Staff log in with their
username. Every billing endpoint receives its acting user from
`require_admin` or `require_staff`; services only see the user's
display name.
"""
import logging
import os
import uuid
from typing import Optional, Union

from fastapi import Depends, HTTPException, Request, status
from fastapi_users import (
    BaseUserManager,
    FastAPIUsers,
    InvalidPasswordException,
    UUIDIDMixin,
    schemas,
)
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    CookieTransport,
    JWTStrategy,
)
from fastapi_users.db import SQLAlchemyUserDatabase
from fastapi_users.password import PasswordHelper
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import UserRole
from app.db.engine import get_session
from app.models.user import User

logger = logging.getLogger(__name__)

SECRET = os.getenv("SECRET_KEY")
if not SECRET:
    raise RuntimeError("FATAL: SECRET_KEY not configured in .env")

APP_ENV = os.getenv("APP_ENV", "development")
ACCESS_TOKEN_COOKIE_NAME = "cabletv_billing_access_token"
ACCESS_TOKEN_LIFETIME_SECONDS = 8 * 60 * 60  # one collection shift
MIN_PASSWORD_LENGTH = 8

# Argon2 hashes, shared with UserService for accounts created by admins
password_helper = PasswordHelper(CryptContext(schemes=["argon2"], deprecated="auto"))


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=SECRET, lifetime_seconds=ACCESS_TOKEN_LIFETIME_SECONDS)


auth_backend_jwt = AuthenticationBackend(
    name="jwt",
    transport=BearerTransport(tokenUrl="auth/jwt/login"),
    get_strategy=get_jwt_strategy,
)
auth_backend_cookie = AuthenticationBackend(
    name="cookie",
    transport=CookieTransport(
        cookie_name=ACCESS_TOKEN_COOKIE_NAME,
        cookie_max_age=ACCESS_TOKEN_LIFETIME_SECONDS,
        cookie_httponly=True,
        cookie_secure=(APP_ENV == "production"),
        cookie_samesite="lax",
    ),
    get_strategy=get_jwt_strategy,
)


class StaffUserDatabase(SQLAlchemyUserDatabase):
    """The OAuth2 login form's "username" field holds the staff username."""

    async def get_by_email(self, email: str) -> Optional[User]:
        statement = select(self.user_table).where(self.user_table.username == email)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = SECRET
    verification_token_secret = SECRET

    async def validate_password(
        self, password: str, user: Union[schemas.UC, User]
    ) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidPasswordException(
                reason=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        username = getattr(user, "username", None)
        if username and username.lower() in password.lower():
            raise InvalidPasswordException(reason="Password must not contain the username")

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info(f"Staff account created: {user.username} ({user.role.value})")

    async def on_after_login(self, user: User, request: Optional[Request] = None, response=None):
        logger.info(f"Staff login: {user.username}")


async def get_user_db(session: AsyncSession = Depends(get_session)):
    yield StaffUserDatabase(session, User)


async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db, password_helper)


fastapi_users = FastAPIUsers[User, uuid.UUID](
    get_user_manager, [auth_backend_jwt, auth_backend_cookie]
)

current_active_user = fastapi_users.current_user(active=True)


class RoleChecker:
    """
    Dependency that lets a request through only for the given roles.

        @router.post("/bills/generate")
        def generate(user: User = Depends(require_admin)): ...
    """

    def __init__(self, allowed_roles: list[UserRole]):
        self.allowed_roles = allowed_roles

    def __call__(self, user: User = Depends(current_active_user)) -> User:
        if user.role not in self.allowed_roles:
            allowed = ", ".join(role.value for role in self.allowed_roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {allowed}. Your role: {user.role}",
            )
        return user


require_admin = RoleChecker([UserRole.ADMIN])
require_staff = RoleChecker([UserRole.ADMIN, UserRole.EMPLOYEE])
