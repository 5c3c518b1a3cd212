"""Accrual Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from leave_ledger.common.constants import AccrualRunStatus, AccrualRunType
from leave_ledger.policy.schemas import EmploymentTypeAmounts


class AccrualRunRequest(BaseModel):
    as_of: Optional[date] = None
    actor_id: Optional[uuid.UUID] = None


class AccrualFailureOut(BaseModel):
    employee_id: uuid.UUID
    reason: str


class AccrualRunOut(BaseModel):
    """Summary of one accrual batch."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    run_month: date
    as_of: date
    run_type: AccrualRunType
    status: AccrualRunStatus
    employees_processed: int
    total_credited: Decimal
    failures: list[AccrualFailureOut] = []
    executed_at: Optional[datetime] = None


class AccrualInfoOut(BaseModel):
    last_run: Optional[AccrualRunOut] = None
    next_run: date
    rates: EmploymentTypeAmounts
    history: list[AccrualRunOut] = []
