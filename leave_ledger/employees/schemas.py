"""Employee Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from leave_ledger.common.constants import EmploymentType, UserRole


class EmployeeCreate(BaseModel):
    """Payload for registering an employee."""

    name: str = Field(..., min_length=2, max_length=200)
    email: EmailStr
    role: UserRole = UserRole.employee
    employment_type: EmploymentType = EmploymentType.regular
    joining_date: date
    department: Optional[str] = Field(None, max_length=100)
    manager_id: Optional[uuid.UUID] = None


class EmployeeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    employment_type: EmploymentType
    joining_date: date
    department: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None
    sick_balance: Decimal
    casual_balance: Decimal
    vacation_balance: Decimal
    academic_balance: Decimal
    comp_off_balance: Decimal
    lop_balance: Decimal
    carry_forward_days: Decimal
    is_active: bool
    created_at: Optional[datetime] = None
