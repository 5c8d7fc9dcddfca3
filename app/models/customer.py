"""
Customer model for cable-TV subscribers.
"""
import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from ..core.timeutils import utcnow


class Customer(SQLModel, table=True):
    """
    Customer model representing cable-TV subscribers.

    Fields:
    - id: UUID primary key
    - name: Customer name (required)
    - phone_number, email, address: Contact data
    - collector_name: Employee assigned to collect from this customer
    - previous_outstanding: Balance carried over from the prior billing cycle
    - current_outstanding: Live balance owed, never negative
    - credit_balance: Amount paid in excess of all unpaid bills
    - package_amount: Cached monthly charge (total of the last bill)
    - bill_due_date: Day of month (1-31) the customer is expected to pay
    - is_active: Whether the account is in service
    - created_at: Registration timestamp

    The outstanding/credit/package_amount fields are owned by the billing
    engine; the admin screens only edit identity fields.
    """

    __tablename__ = "customers"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    name: str = Field(nullable=False, index=True)
    phone_number: str | None = Field(default=None)
    email: str | None = Field(default=None)
    address: str | None = Field(default=None)
    collector_name: str | None = Field(default=None, index=True)
    previous_outstanding: float = Field(default=0.0)
    current_outstanding: float = Field(default=0.0)
    credit_balance: float = Field(default=0.0)
    package_amount: float = Field(default=0.0)
    bill_due_date: int | None = Field(default=None, ge=1, le=31)
    is_active: bool = Field(default=True)
    created_at: datetime | None = Field(default_factory=utcnow)
