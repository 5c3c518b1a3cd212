"""Holiday Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from leave_ledger.common.constants import HolidayType


class HolidayCreate(BaseModel):
    """Payload for adding a holiday."""

    date: date
    name: str = Field(..., min_length=2, max_length=200)
    type: HolidayType = HolidayType.national


class HolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: date
    name: str
    year: int
    type: HolidayType
    is_active: bool = True
