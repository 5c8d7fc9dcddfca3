from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AutoBillingSettings(BaseModel):
    enabled: bool
    day_of_month: int
    last_run_date: Optional[datetime] = None


class AutoBillingSettingsUpdate(BaseModel):
    enabled: bool
    day_of_month: Optional[int] = Field(default=1, ge=1, le=31)


class AutoBillingRunResponse(BaseModel):
    ran: bool
    settings: AutoBillingSettings
