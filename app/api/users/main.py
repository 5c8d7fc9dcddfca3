# app/api/users/main.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.constants import UserRole
from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...schemas.user import UserCreate, UserRead, UserUpdate
from ...services.user_service import UserService

router = APIRouter()


def get_user_service(session: Session = Depends(get_sync_session)) -> UserService:
    return UserService(session)


@router.get("/users/me", response_model=UserRead)
def api_get_me(current_user: User = Depends(require_staff)):
    return current_user


@router.get("/users", response_model=list[UserRead])
def api_get_users(
    role: UserRole | None = None,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    """Staff accounts, optionally only admins or only collecting employees."""
    return service.get_users(role)


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def api_create_user(
    user_data: UserCreate,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.create_user(user_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/users/{user_id}", response_model=UserRead)
def api_update_user(
    user_id: uuid.UUID,
    user_data: UserUpdate,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.update_user(user_id, user_data)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/users/{user_id}/deactivate", response_model=UserRead)
def api_deactivate_user(
    user_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=403, detail="You cannot deactivate your own account.")
    try:
        return service.deactivate_user(user_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
