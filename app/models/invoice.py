"""
Payment invoice model: one row per collected payment.

Despite the historical "invoice" name this is a receipt, not a bill.
Rows are never edited; administrators may delete them.

Fields:
- id: Auto-increment primary key
- customer_id: Paying customer (required)
- bill_id / bill_month: Optional link to the bill being settled
- amount_paid: Positive amount, bounded per transaction
- payment_method: cash, online, bank_transfer or cheque
- paid_at: When the money was received
- collected_by: Employee who collected it
- receipt_number: Display identifier (unique)
- notes: Free text
"""
import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from ..core.constants import PaymentMethod
from ..core.timeutils import utcnow


class PaymentInvoice(SQLModel, table=True):
    __tablename__ = "invoices"

    id: int | None = Field(default=None, primary_key=True)
    customer_id: uuid.UUID = Field(foreign_key="customers.id", nullable=False, index=True)
    customer_name: str | None = Field(default=None)
    bill_id: int | None = Field(default=None, index=True)
    bill_month: str | None = Field(default=None)
    amount_paid: float = Field(nullable=False)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH, nullable=False)
    paid_at: datetime = Field(default_factory=utcnow)
    collected_by: str = Field(nullable=False)
    receipt_number: str = Field(nullable=False, unique=True)
    notes: str | None = Field(default=None)
    created_at: datetime | None = Field(default_factory=utcnow)
