"""
Monthly bill model.

A bill is a point-in-time snapshot: vc_breakdown and total_amount are fixed
at creation. Only status and updated_at change afterwards.
"""
import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel
from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.constants import BillStatus
from ..core.timeutils import utcnow


class VCBillBreakdown(BaseModel):
    vc_number: str
    package_id: int
    package_name: str
    amount: float


class MonthlyBill(SQLModel, table=True):
    __tablename__ = "bills"
    __table_args__ = (
        UniqueConstraint("customer_id", "month", name="uq_bills_customer_month"),
        # ids are never reused, so payments of a deleted bill never attach to a new one
        {"sqlite_autoincrement": True},
    )

    id: int | None = Field(default=None, primary_key=True)
    customer_id: uuid.UUID = Field(foreign_key="customers.id", nullable=False, index=True)
    customer_name: str = Field(nullable=False)
    customer_area: str | None = Field(default=None)
    month: str = Field(nullable=False, index=True)  # YYYY-MM
    vc_breakdown: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    total_amount: float = Field(nullable=False)
    bill_due_date: date = Field(nullable=False)
    status: BillStatus = Field(default=BillStatus.GENERATED, nullable=False)
    created_at: datetime | None = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default_factory=utcnow)
