# app/services/user_service.py
"""
Staff accounts managed by admins. Accounts are deactivated rather than
deleted: their display names stay on receipts and VC history.
"""
import logging
import uuid
from typing import List, Optional

from sqlmodel import Session, or_, select

from ..core.constants import UserRole
from ..core.users import MIN_PASSWORD_LENGTH, password_helper
from ..models.user import User
from ..schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: Session):
        self.session = session

    def get_users(self, role: Optional[UserRole] = None) -> List[User]:
        statement = select(User).order_by(User.username)
        if role is not None:
            statement = statement.where(User.role == role)
        return self.session.exec(statement).all()

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise FileNotFoundError(f"User {user_id} not found.")
        return user

    def _check_password(self, password: str, username: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if username.lower() in password.lower():
            raise ValueError("Password must not contain the username.")

    def create_user(self, user_create: UserCreate) -> User:
        taken = self.session.exec(
            select(User).where(
                or_(User.username == user_create.username, User.email == user_create.email)
            )
        ).first()
        if taken:
            raise ValueError("Username or email already in use.")
        self._check_password(user_create.password, user_create.username)

        user = User(
            username=user_create.username,
            email=user_create.email,
            hashed_password=password_helper.hash(user_create.password),
            full_name=user_create.full_name,
            role=user_create.role,
            collector_name=user_create.collector_name,
            is_superuser=user_create.role == UserRole.ADMIN,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info(f"Staff account created: {user.username} ({user.role.value})")
        return user

    def update_user(self, user_id: uuid.UUID, user_update: UserUpdate) -> User:
        user = self.get_user(user_id)
        changes = user_update.model_dump(exclude_unset=True)

        password = changes.pop("password", None)
        if password:
            self._check_password(password, user.username)
            user.hashed_password = password_helper.hash(password)
        if "role" in changes and changes["role"] is not None:
            user.is_superuser = changes["role"] == UserRole.ADMIN

        for field in ("email", "full_name", "role", "collector_name", "is_active"):
            if field in changes and changes[field] is not None:
                setattr(user, field, changes[field])

        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def deactivate_user(self, user_id: uuid.UUID) -> User:
        user = self.get_user(user_id)
        user.is_active = False
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.warning(f"Staff account deactivated: {user.username}")
        return user
