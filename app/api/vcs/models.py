# app/api/vcs/models.py
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ...core.constants import VCStatus


class VCStatusHistory(BaseModel):
    status: VCStatus
    changed_at: datetime
    changed_by: str
    reason: str | None = None


class VCOwnershipHistory(BaseModel):
    customer_id: uuid.UUID
    customer_name: str | None = None
    start_date: datetime
    end_date: datetime | None = None
    assigned_by: str | None = None


class VCItem(BaseModel):
    id: int
    vc_number: str
    status: VCStatus
    customer_id: uuid.UUID | None = None
    customer_name: str | None = None
    package_id: int | None = None
    package_name: str | None = None
    status_history: list[VCStatusHistory] = []
    ownership_history: list[VCOwnershipHistory] = []
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class VCAvailabilityRequest(BaseModel):
    vc_numbers: list[str] = Field(min_length=1)


class VCAvailabilityResponse(BaseModel):
    available: list[str]
    unavailable: list[str]
    details: dict[str, dict]


class VCAssignRequest(BaseModel):
    vc_ids: list[int] = Field(min_length=1)
    customer_id: uuid.UUID
    package_id: int | None = None


class VCUnassignRequest(BaseModel):
    vc_ids: list[int] = Field(min_length=1)


class VCReassignRequest(BaseModel):
    customer_id: uuid.UUID


class VCStatusChangeRequest(BaseModel):
    status: VCStatus
    reason: str | None = None


class VCBulkCreateRequest(BaseModel):
    vc_numbers: list[str] = Field(min_length=1)
    package_id: int


class VCBulkCreateResponse(BaseModel):
    success: list[str]
    failed: list[dict[str, str]]
