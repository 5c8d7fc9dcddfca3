# app/api/payments/models.py
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ...core.constants import PaymentMethod


# --- Pydantic models (payments) ---
class PaymentBase(BaseModel):
    customer_id: uuid.UUID
    amount_paid: float
    payment_method: PaymentMethod = PaymentMethod.CASH
    bill_id: int | None = None
    paid_at: datetime | None = None
    notes: str | None = None


class PaymentCreate(PaymentBase):
    pass


class Payment(PaymentBase):
    id: int
    customer_name: str | None = None
    bill_month: str | None = None
    paid_at: datetime
    collected_by: str
    receipt_number: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class FailedPayment(BaseModel):
    payment: dict
    error: str


class BulkPaymentResponse(BaseModel):
    success: list[Payment]
    failed: list[FailedPayment]


class MethodTotals(BaseModel):
    count: int
    amount: float
    label: str | None = None


class PaymentsSummary(BaseModel):
    total_payments: int
    total_amount: float
    payments_by_method: dict[str, MethodTotals]
    payments_by_employee: dict[str, MethodTotals]


class DailyCollections(BaseModel):
    total_collections: int
    total_amount: float
    collections: list[Payment]


class PaymentHistory(BaseModel):
    payments: list[Payment]
    total_paid: float
    last_payment_date: datetime | None = None
    average_payment: float
