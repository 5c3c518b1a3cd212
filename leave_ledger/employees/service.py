"""Employee registry — registration with prorated balances, lookup, deactivation."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from leave_ledger.common.audit import create_audit_entry
from leave_ledger.common.clock import local_today
from leave_ledger.common.constants import (
    ACCRUAL_BUCKETS,
    BUCKET_COLUMNS,
    ONE_DECIMAL,
    BalanceBucket,
    EmploymentType,
)
from leave_ledger.common.exceptions import (
    ConcurrencyConflict,
    ConflictError,
    NotFoundException,
)
from leave_ledger.common.locks import employee_lock
from leave_ledger.employees.models import Employee
from leave_ledger.employees.schemas import EmployeeCreate
from leave_ledger.policy.schemas import PolicyConfig
from leave_ledger.policy.service import PolicyService

logger = logging.getLogger(__name__)


def months_worked(joining_date: date, today: date) -> int:
    """Calendar months from the joining month through ``today``'s month, inclusive."""
    months = (today.year - joining_date.year) * 12 + (today.month - joining_date.month) + 1
    return max(months, 0)


def initial_balances(
    employment_type: EmploymentType,
    joining_date: date,
    policy: PolicyConfig,
    today: date,
) -> dict[BalanceBucket, Decimal]:
    """Opening balances for a newly registered employee.

    Interns accrue from their joining month, capped at quota. Regular
    employees who joined in an earlier year start on full quota; those who
    joined this year get the quota prorated by months worked, rounded to a
    whole day.
    """

    quotas = policy.leave_quotas.for_type(employment_type)
    months = Decimal(months_worked(joining_date, today))
    opening: dict[BalanceBucket, Decimal] = {}

    if employment_type == EmploymentType.intern:
        rates = policy.accrual_rates.for_type(employment_type)
        for bucket in ACCRUAL_BUCKETS:
            earned = (months * rates.for_bucket(bucket)).quantize(ONE_DECIMAL, ROUND_HALF_UP)
            opening[bucket] = min(earned, quotas.for_bucket(bucket))
        return opening

    for bucket in ACCRUAL_BUCKETS:
        quota = quotas.for_bucket(bucket)
        if joining_date.year < today.year:
            opening[bucket] = quota
        else:
            prorated = (months / 12 * quota).quantize(Decimal("1"), ROUND_HALF_UP)
            opening[bucket] = min(prorated, quota)
    return opening


class EmployeeService:
    """Async employee operations."""

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Employee:
        query = select(Employee).where(Employee.id == employee_id)
        if for_update:
            # Bypass the identity map so balance checks see committed state.
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        *,
        include_inactive: bool = False,
    ) -> list[Employee]:
        query = select(Employee).order_by(Employee.name)
        if not include_inactive:
            query = query.where(Employee.is_active.is_(True))
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def register_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
        today: Optional[date] = None,
    ) -> Employee:
        """Create an employee with balances initialised from policy."""

        today = today or local_today()
        policy = await PolicyService.get_policy(db)

        existing = await db.execute(select(Employee.id).where(Employee.email == data.email))
        if existing.scalar() is not None:
            raise ConflictError("email", data.email)

        if data.manager_id is not None:
            manager = await db.get(Employee, data.manager_id)
            if manager is None:
                raise NotFoundException("Employee", str(data.manager_id))

        opening = initial_balances(data.employment_type, data.joining_date, policy, today)
        employee = Employee(
            **data.model_dump(),
            **{BUCKET_COLUMNS[bucket]: amount for bucket, amount in opening.items()},
            comp_off_balance=Decimal("0"),
            lop_balance=Decimal("0"),
            carry_forward_days=Decimal("0"),
            yearly_lop=Decimal("0"),
            monthly_lop=Decimal("0"),
            is_active=True,
            lop_history=[],
        )
        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ConflictError("email", data.email) from exc

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values={
                **data.model_dump(mode="json"),
                "balances": {b.value: str(v) for b, v in opening.items()},
            },
        )
        logger.info(
            "Employee registered: %s (%s, joined %s)",
            data.email, data.employment_type.value, data.joining_date.isoformat(),
        )
        return employee

    @staticmethod
    async def deactivate_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Mark an employee inactive; records are never deleted."""

        await EmployeeService.get_employee(db, employee_id)
        async with employee_lock(employee_id):
            employee = await EmployeeService.get_employee(db, employee_id, for_update=True)
            if not employee.is_active:
                return employee

            employee.is_active = False
            try:
                await db.flush()
            except StaleDataError as exc:
                raise ConcurrencyConflict("Employee", employee.id) from exc

            await create_audit_entry(
                db,
                action="deactivate",
                entity_type="employee",
                entity_id=employee.id,
                actor_id=actor_id,
                old_values={"is_active": True},
                new_values={"is_active": False},
            )

        logger.info("Employee deactivated: %s", employee.email)
        return employee
