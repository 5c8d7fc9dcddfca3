# app/core/config.py
"""
Process-wide configuration, read once at startup.

The storage backend is chosen here and never changes for the lifetime of
the process:
- "sql": SQLite file (or DATABASE_URL_SYNC) persisted on disk.
- "memory": in-memory SQLite seeded with demo fixtures.
"""
import os
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "data")
DEFAULT_DATABASE_FILE = os.path.join(DATA_DIR, "db", "billing.sqlite")

# Named shared-cache database so the sync and async engines see the same tables
MEMORY_DATABASE_PATH = "file:cabletv_billing?mode=memory&cache=shared&uri=true"


class BillingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "development"
    billing_backend: Literal["sql", "memory"] = "sql"
    database_url_sync: str | None = None

    # Billing rules
    bill_due_days: int = 15
    max_payment_amount: float = 100000.0

    # Daily auto-billing gate (HH:MM)
    auto_billing_check_hour: str = "01:00"

    def resolved_database_url(self) -> str:
        if self.billing_backend == "memory":
            return f"sqlite:///{MEMORY_DATABASE_PATH}"
        if self.database_url_sync:
            return self.database_url_sync
        os.makedirs(os.path.dirname(DEFAULT_DATABASE_FILE), exist_ok=True)
        return f"sqlite:///{DEFAULT_DATABASE_FILE}"


@lru_cache
def get_settings() -> BillingSettings:
    return BillingSettings()
