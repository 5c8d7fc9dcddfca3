"""
VC inventory model: one row per billable connection (viewing card).

Status and ownership history are embedded as JSON lists on the row so they
are always read and written together with the VC itself. Entries are only
ever appended; the open ownership entry is the one with end_date = None.
"""
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from ..core.constants import VCStatus
from ..core.timeutils import utcnow


class VCStatusHistoryEntry(BaseModel):
    status: VCStatus
    changed_at: datetime
    changed_by: str
    reason: str | None = None


class VCOwnershipEntry(BaseModel):
    customer_id: uuid.UUID
    customer_name: str | None = None
    start_date: datetime
    end_date: datetime | None = None
    assigned_by: str | None = None


class VCItem(SQLModel, table=True):
    __tablename__ = "vc_inventory"

    id: int | None = Field(default=None, primary_key=True)
    vc_number: str = Field(nullable=False, unique=True, index=True)
    status: VCStatus = Field(default=VCStatus.AVAILABLE, nullable=False, index=True)
    customer_id: uuid.UUID | None = Field(default=None, foreign_key="customers.id", index=True)
    customer_name: str | None = Field(default=None)
    package_id: int | None = Field(default=None)
    package_name: str | None = Field(default=None)
    status_history: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    ownership_history: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON)
    )
    created_at: datetime | None = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default_factory=utcnow)

    def status_entries(self) -> list[VCStatusHistoryEntry]:
        return [VCStatusHistoryEntry.model_validate(h) for h in self.status_history or []]

    def ownership_entries(self) -> list[VCOwnershipEntry]:
        return [VCOwnershipEntry.model_validate(h) for h in self.ownership_history or []]

    def open_ownership_count(self) -> int:
        return sum(1 for h in self.ownership_history or [] if h.get("end_date") is None)
