# app/api/customers/models.py
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Customers ---
class CustomerBase(BaseModel):
    name: str
    phone_number: str | None = None
    email: str | None = None
    address: str | None = None
    collector_name: str | None = None
    bill_due_date: int | None = Field(default=1, ge=1, le=31)
    is_active: bool = True


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: str | None = None
    phone_number: str | None = None
    email: str | None = None
    address: str | None = None
    collector_name: str | None = None
    bill_due_date: int | None = Field(default=None, ge=1, le=31)
    is_active: bool | None = None


class Customer(CustomerBase):
    id: uuid.UUID
    previous_outstanding: float
    current_outstanding: float
    credit_balance: float
    package_amount: float
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Packages ---
class PackageCreate(BaseModel):
    name: str
    price: float = Field(ge=0)
    description: str | None = None
    channels: int = 0
    features: list[str] = []
    is_active: bool = True


class Package(PackageCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)
