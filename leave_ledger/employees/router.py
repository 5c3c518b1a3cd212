"""Employees router — register, list, fetch and deactivate employees."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.database import get_db
from leave_ledger.employees.schemas import EmployeeCreate, EmployeeOut
from leave_ledger.employees.service import EmployeeService

router = APIRouter(prefix="", tags=["employees"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[EmployeeOut])
async def list_employees(
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.list_employees(db, include_inactive=include_inactive)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=EmployeeOut, status_code=201)
async def register_employee(
    body: EmployeeCreate,
    actor_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Register an employee; opening balances are prorated from the joining date."""
    return await EmployeeService.register_employee(db, body, actor_id=actor_id)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.get_employee(db, employee_id)


# ── POST /{id}/deactivate ───────────────────────────────────────────

@router.post("/{employee_id}/deactivate", response_model=EmployeeOut)
async def deactivate_employee(
    employee_id: uuid.UUID,
    actor_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.deactivate_employee(db, employee_id, actor_id=actor_id)
