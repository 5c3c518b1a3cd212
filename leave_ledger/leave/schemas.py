"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leave_ledger.common.constants import (
    MAX_COMP_OFF_CREDIT,
    LeaveStatus,
    LeaveType,
    TransitionAction,
)


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class DocumentRef(BaseModel):
    """Reference to a supporting document held by the file store."""

    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1000)
    uploaded_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for applying a leave request.

    Date ordering is a policy rule checked by the validation engine, so it
    is not enforced here.
    """

    leave_type: LeaveType
    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    is_half_day: bool = False
    reason: str = Field(..., min_length=3, max_length=1000)
    documents: list[DocumentRef] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    is_half_day: bool
    reason: str
    status: LeaveStatus
    working_days: Decimal
    lop_days_attributed: Decimal
    balance_deducted: bool
    documents: list[DocumentRef] = []
    comp_off_days: Optional[Decimal] = None
    approved_by: Optional[uuid.UUID] = None
    approved_on: Optional[datetime] = None
    rejected_by: Optional[uuid.UUID] = None
    rejected_on: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    cancelled_by: Optional[uuid.UUID] = None
    cancelled_on: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# Transitions
# ═════════════════════════════════════════════════════════════════════


class LeaveStatusUpdate(BaseModel):
    """Approve or reject a pending request."""

    action: TransitionAction
    actor_id: uuid.UUID
    reason: Optional[str] = Field(None, max_length=500)


class LeaveCancelRequest(BaseModel):
    actor_id: uuid.UUID
    reason: Optional[str] = Field(None, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Comp Off
# ═════════════════════════════════════════════════════════════════════


class CompOffCreditRequest(BaseModel):
    """Credit compensatory-off days earned for extra work."""

    days: Decimal = Field(..., gt=0, le=MAX_COMP_OFF_CREDIT)
    reason: str = Field(..., min_length=3, max_length=500)
    actor_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# Balances / LOP
# ═════════════════════════════════════════════════════════════════════


class BalanceOut(BaseModel):
    """Per-bucket balances keyed by bucket name (``sick``, ``compOff`` …)."""

    employee_id: uuid.UUID
    balances: dict[str, Decimal]
    carry_forward_days: Decimal


class LOPHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_date: date
    days: Decimal
    reason: str
    leave_request_id: Optional[uuid.UUID] = None


class LOPStatusOut(BaseModel):
    employee_id: uuid.UUID
    yearly_lop: Decimal
    monthly_lop: Decimal
    max_yearly_lop: Decimal
    max_monthly_lop: Decimal
    exceeds_yearly_limit: bool
    exceeds_monthly_limit: bool
    near_threshold: bool
    total_lop_balance: Decimal
    history: list[LOPHistoryOut] = []
