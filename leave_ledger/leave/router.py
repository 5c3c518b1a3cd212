"""Leave router — apply, approve/reject, cancel, balances, LOP status, comp-off.

Identity is verified upstream; actor ids arrive as plain data.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import LeaveStatus
from leave_ledger.common.pagination import PaginatedResponse, PaginationParams
from leave_ledger.database import get_db
from leave_ledger.leave.schemas import (
    BalanceOut,
    CompOffCreditRequest,
    LeaveCancelRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveStatusUpdate,
    LOPStatusOut,
)
from leave_ledger.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST /apply/{employee_id} ───────────────────────────────────────

@router.post("/apply/{employee_id}", response_model=LeaveRequestOut, status_code=201)
async def apply_leave(
    employee_id: uuid.UUID,
    body: LeaveRequestCreate,
    db: AsyncSession = Depends(get_db),
):
    """Apply for leave. Runs the full admission rule set."""
    leave_req = await LeaveService.apply_leave(db, employee_id, body)
    return LeaveRequestOut.model_validate(leave_req)


# ── GET /requests ───────────────────────────────────────────────────

@router.get("/requests", response_model=PaginatedResponse[LeaveRequestOut])
async def list_requests(
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_leave_requests(
        db, pagination, employee_id=employee_id, status=status,
    )


# ── GET /balances/{employee_id} ─────────────────────────────────────

@router.get("/balances/{employee_id}", response_model=BalanceOut)
async def get_balances(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_balance(db, employee_id)


# ── GET /lop-status/{employee_id} ───────────────────────────────────

@router.get("/lop-status/{employee_id}", response_model=LOPStatusOut)
async def get_lop_status(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Yearly/monthly LOP counters, limits, alert flag and history."""
    return await LeaveService.get_lop_status(db, employee_id)


# ── POST /comp-off/{employee_id} ────────────────────────────────────

@router.post("/comp-off/{employee_id}", response_model=BalanceOut)
async def credit_comp_off(
    employee_id: uuid.UUID,
    body: CompOffCreditRequest,
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.add_comp_off_credit(
        db, employee_id, body.days, body.reason, actor_id=body.actor_id,
    )


# ── PUT /{id}/status ────────────────────────────────────────────────

@router.put("/{request_id}/status", response_model=LeaveRequestOut)
async def update_status(
    request_id: uuid.UUID,
    body: LeaveStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Approve (deducts, converting any shortfall to LOP) or reject."""
    leave_req = await LeaveService.transition_status(
        db, request_id, body.action, body.actor_id, body.reason,
    )
    return LeaveRequestOut.model_validate(leave_req)


# ── PUT /{id}/cancel ────────────────────────────────────────────────

@router.put("/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_leave(
    request_id: uuid.UUID,
    body: LeaveCancelRequest,
    db: AsyncSession = Depends(get_db),
):
    """Cancel before the start date. Restores any deducted balance."""
    leave_req = await LeaveService.cancel(db, request_id, body.actor_id, body.reason)
    return LeaveRequestOut.model_validate(leave_req)
