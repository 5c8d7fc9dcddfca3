"""
Async SQLModel engine used only by FastAPI Users (user table).
Follows the same backend selection as the sync engine:
- memory backend: the same named in-memory database as the sync engine,
  kept alive through a StaticPool.
- sql backend: DATABASE_URL, defaulting to the billing SQLite file.
"""

import os
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import DEFAULT_DATABASE_FILE, MEMORY_DATABASE_PATH, get_settings

_settings = get_settings()

DATABASE_URL = os.getenv("DATABASE_URL")

if _settings.billing_backend == "memory":
    DATABASE_URL = f"sqlite+aiosqlite:///{MEMORY_DATABASE_PATH}"
elif DATABASE_URL is None:
    os.makedirs(os.path.dirname(DEFAULT_DATABASE_FILE), exist_ok=True)
    DATABASE_URL = f"sqlite+aiosqlite:///{DEFAULT_DATABASE_FILE}"

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _settings.billing_backend == "memory":
    engine = create_async_engine(
        DATABASE_URL, echo=False, connect_args=_connect_args, poolclass=StaticPool
    )
else:
    engine = create_async_engine(DATABASE_URL, echo=False, connect_args=_connect_args)

    if _is_sqlite:
        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.close()

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for async SQLModel session injection.
    Usage: session: AsyncSession = Depends(get_session)
    """
    async with async_session_maker() as session:
        yield session


async def create_db_and_tables():
    """
    Create the user table on the async engine.
    Call this at application startup after importing all models.
    """
    from ..models.user import User

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=[User.__table__])
