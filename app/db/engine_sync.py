"""
SYNC ENGINE - used by every billing service, the API and the scheduler.

The backend is selected once from configuration:
- sql: SQLite file (WAL mode) or DATABASE_URL_SYNC.
- memory: in-memory SQLite shared through a StaticPool and seeded with
  demo fixtures at startup.
"""
import logging
from typing import Generator

from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from ..core.config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()
DATABASE_URL = _settings.resolved_database_url()
_is_sqlite = DATABASE_URL.startswith("sqlite")

if _settings.billing_backend == "memory":
    sync_engine = create_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    _connect_args = {"check_same_thread": False} if _is_sqlite else {}
    sync_engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)

    # WAL mode avoids "database is locked" between the API and the scheduler
    if _is_sqlite:

        @event.listens_for(sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.close()


def get_sync_session() -> Generator[Session, None, None]:
    """
    Dependency for SYNC SQLModel session injection.
    Used by API routers, the billing job and the scheduler.
    """
    with Session(sync_engine) as session:
        yield session


def create_sync_db_and_tables():
    """
    Create all tables with the SYNC engine and, for the memory backend,
    load the demo fixtures.
    """
    from .. import models  # noqa: F401  (registers every table)

    SQLModel.metadata.create_all(sync_engine)

    if _settings.billing_backend == "memory":
        from .fixtures import seed_fixtures

        with Session(sync_engine) as session:
            seed_fixtures(session)
        logger.info("In-memory backend seeded with demo fixtures")
