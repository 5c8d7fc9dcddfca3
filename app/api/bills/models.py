# app/api/bills/models.py
import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from ...core.constants import BillStatus


class VCBillLine(BaseModel):
    vc_number: str
    package_id: int
    package_name: str
    amount: float


class Bill(BaseModel):
    id: int
    customer_id: uuid.UUID
    customer_name: str
    customer_area: str | None = None
    month: str
    vc_breakdown: list[VCBillLine]
    total_amount: float
    bill_due_date: date
    status: BillStatus
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class BillGenerateRequest(BaseModel):
    month: str | None = Field(default=None, description="YYYY-MM, defaults to the current month")
    customer_ids: list[uuid.UUID] | None = None
    due_days: int | None = Field(default=None, ge=1)


class FailedBill(BaseModel):
    customer_id: uuid.UUID
    customer_name: str
    error: str


class GenerationSummary(BaseModel):
    total_customers: int
    bills_generated: int
    total_amount: float


class BillGenerateResponse(BaseModel):
    success: list[Bill]
    failed: list[FailedBill]
    summary: GenerationSummary


class BillingSummary(BaseModel):
    total_bills: int
    total_amount: float
    paid_bills: int
    paid_amount: float
    pending_bills: int
    pending_amount: float


class CustomerFinancialSummary(BaseModel):
    customer_id: uuid.UUID
    previous_os: float
    current_os: float
    credit_balance: float
    last_billed_date: datetime | None = None
    next_due_date: date | None = None
    total_unpaid_bills: float
    total_payments: float
    active_vc_count: int
    monthly_amount: float
