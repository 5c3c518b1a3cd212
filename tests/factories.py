"""Model factories and clock helpers shared by the test modules."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import (
    EmploymentType,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from leave_ledger.employees.models import Employee
from leave_ledger.employees.service import EmployeeService
from leave_ledger.leave.models import LeaveRequest

IST = ZoneInfo("Asia/Kolkata")


def ist(year: int, month: int, day: int, hour: int = 9, minute: int = 0) -> datetime:
    """Wall-clock time in the ledger's default timezone."""
    return datetime(year, month, day, hour, minute, tzinfo=IST)


def _make_employee(
    *,
    email: str = "test.user@example.com",
    name: str = "Test User",
    employment_type: EmploymentType = EmploymentType.regular,
    joining_date: date = date(2024, 1, 15),
    sick: str = "12",
    casual: str = "8",
    vacation: str = "20",
    academic: str = "15",
    comp_off: str = "0",
    lop: str = "0",
    yearly_lop: str = "0",
    monthly_lop: str = "0",
    lop_last_reset_date: Optional[date] = None,
    is_active: bool = True,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        email=email,
        role=UserRole.employee,
        employment_type=employment_type,
        joining_date=joining_date,
        department="Engineering",
        sick_balance=Decimal(sick),
        casual_balance=Decimal(casual),
        vacation_balance=Decimal(vacation),
        academic_balance=Decimal(academic),
        comp_off_balance=Decimal(comp_off),
        lop_balance=Decimal(lop),
        carry_forward_days=Decimal("0"),
        yearly_lop=Decimal(yearly_lop),
        monthly_lop=Decimal(monthly_lop),
        lop_last_reset_date=lop_last_reset_date,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def build_employee(**overrides) -> Employee:
    """Transient Employee for pure domain tests (never added to a session)."""
    return Employee(**_make_employee(**overrides), lop_history=[])


async def seed_employee(db: AsyncSession, **overrides) -> Employee:
    """Insert an employee and return the ORM instance."""
    employee = build_employee(**overrides)
    db.add(employee)
    await db.flush()
    return employee


def build_request(
    *,
    employee_id: Optional[uuid.UUID] = None,
    leave_type: LeaveType = LeaveType.casual,
    start_date: date,
    end_date: Optional[date] = None,
    status: LeaveStatus = LeaveStatus.pending,
    working_days: str = "1",
    lop_days_attributed: str = "0",
    balance_deducted: bool = False,
    comp_off_days: Optional[Decimal] = None,
) -> LeaveRequest:
    """Transient LeaveRequest for pure domain tests."""
    return LeaveRequest(
        id=uuid.uuid4(),
        employee_id=employee_id or uuid.uuid4(),
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date or start_date,
        is_half_day=False,
        reason="Family function out of town",
        status=status,
        working_days=Decimal(working_days),
        lop_days_attributed=Decimal(lop_days_attributed),
        balance_deducted=balance_deducted,
        documents=[],
        comp_off_days=comp_off_days,
    )


def bump_version_after_load(monkeypatch, employee_id: Optional[uuid.UUID] = None) -> None:
    """Simulate a writer in another process racing a locked employee update.

    Every ``EmployeeService.get_employee(..., for_update=True)`` returns the
    row as read, then bumps its version behind the session's back, so the
    caller's next flush of that employee is stale. ``employee_id`` limits
    the race to one employee.
    """
    load = EmployeeService.get_employee

    async def load_then_bump(db, target_id, *, for_update=False):
        employee = await load(db, target_id, for_update=for_update)
        if for_update and employee_id in (None, target_id):
            await db.execute(
                update(Employee)
                .where(Employee.id == target_id)
                .values(version=Employee.version + 1)
                .execution_options(synchronize_session=False)
            )
        return employee

    monkeypatch.setattr(EmployeeService, "get_employee", staticmethod(load_then_bump))
