"""Request/response schemas shared by the auth layer and the admin API."""
from .user import UserCreate, UserRead, UserUpdate
