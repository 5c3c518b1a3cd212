"""Accrual engine — monthly credit, January carry-forward, negative → LOP.

Each employee's new balances are planned by :func:`plan_accrual` (pure) and
then applied under that employee's lock inside its own savepoint. An
employee whose plan would push LOP past the configured caps, or whose row
changed underneath the run, is left untouched and reported as a failure;
the rest of the batch carries on.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from leave_ledger.accrual.models import AccrualRun
from leave_ledger.accrual.schemas import AccrualInfoOut, AccrualRunOut
from leave_ledger.common.audit import create_audit_entry
from leave_ledger.common.clock import local_today
from leave_ledger.common.constants import (
    ACCRUAL_BUCKETS,
    CARRY_FORWARD_SPLIT,
    ONE_DECIMAL,
    AccrualRunStatus,
    AccrualRunType,
    BalanceBucket,
)
from leave_ledger.common.exceptions import ConcurrencyConflict, ConflictError
from leave_ledger.common.locks import employee_lock
from leave_ledger.employees.models import Employee
from leave_ledger.employees.service import EmployeeService
from leave_ledger.leave import ledger, lop
from leave_ledger.policy.schemas import PolicyConfig
from leave_ledger.policy.service import PolicyService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
RECENT_RUNS = 10


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


@dataclass
class AccrualPlan:
    """New bucket values for one employee, plus LOP to take on."""

    balances: dict[BalanceBucket, Decimal]
    credited: Decimal
    lop_days: Decimal = ZERO
    carry_forward: Optional[Decimal] = None


@dataclass
class AccrualSummary:
    run_type: AccrualRunType
    employees_processed: int = 0
    total_credited: Decimal = ZERO
    failures: list[dict] = field(default_factory=list)


def plan_accrual(employee: Employee, policy: PolicyConfig, as_of: date) -> AccrualPlan:
    """Compute ``employee``'s post-accrual balances without touching it.

    January carries forward ``min(sick + casual + vacation, cap)`` split
    40/30/30; other months add the monthly rate to every accrual bucket.
    Buckets are then rounded to one decimal, negatives become LOP, and
    each bucket is capped at the annual quota.
    """

    current = {b: ledger.get_balance(employee, b) for b in ACCRUAL_BUCKETS}
    quotas = policy.leave_quotas.for_type(employee.employment_type)
    proposed = dict(current)
    carry_forward: Optional[Decimal] = None

    if as_of.month == 1:
        pool = sum((current[b] for b in CARRY_FORWARD_SPLIT), ZERO)
        carry_forward = min(pool, policy.system_settings.carry_forward_cap)
        for bucket, share in CARRY_FORWARD_SPLIT.items():
            proposed[bucket] = carry_forward * share
    else:
        rates = policy.accrual_rates.for_type(employee.employment_type)
        for bucket in ACCRUAL_BUCKETS:
            proposed[bucket] = current[bucket] + rates.for_bucket(bucket)

    lop_days = ZERO
    for bucket in ACCRUAL_BUCKETS:
        value = proposed[bucket].quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
        if value < 0:
            lop_days += -value
            value = ZERO
        proposed[bucket] = min(value, quotas.for_bucket(bucket))

    credited = sum((proposed[b] - current[b] for b in ACCRUAL_BUCKETS), ZERO)
    return AccrualPlan(
        balances=proposed,
        credited=credited,
        lop_days=lop_days,
        carry_forward=carry_forward,
    )


class AccrualEngine:
    """Monthly accrual batch and its run log."""

    @staticmethod
    async def _apply_to_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        policy: PolicyConfig,
        as_of: date,
        summary: AccrualSummary,
    ) -> None:
        async with employee_lock(employee_id):
            employee = await EmployeeService.get_employee(db, employee_id, for_update=True)
            plan = plan_accrual(employee, policy, as_of)

            restrict = policy.system_settings.lop_settings.restrict_leave_after_max_lop
            if restrict and lop.would_exceed(employee, plan.lop_days, policy, as_of):
                summary.failures.append(
                    {
                        "employee_id": str(employee.id),
                        "reason": f"{plan.lop_days} LOP day(s) from negative balances "
                                  "would exceed the LOP limits",
                    }
                )
                logger.warning("Accrual skipped for %s: LOP limit", employee.id)
                return

            for bucket, value in plan.balances.items():
                ledger.set_balance(employee, bucket, value)
            if plan.carry_forward is not None:
                employee.carry_forward_days = plan.carry_forward
            lop.add_lop_days(
                employee,
                plan.lop_days,
                f"negative balance converted during accrual {as_of.isoformat()}",
                policy,
                as_of,
            )

            try:
                await db.flush()
            except StaleDataError as exc:
                raise ConcurrencyConflict("Employee", employee.id) from exc

            summary.employees_processed += 1
            summary.total_credited += plan.credited

    @staticmethod
    async def run_accrual(
        db: AsyncSession,
        as_of: Optional[date] = None,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AccrualRunOut:
        """Run the batch for ``as_of``'s month; refused if that month already ran."""

        as_of = as_of or local_today()
        run_month = first_of_month(as_of)

        existing = await db.execute(
            select(AccrualRun.id).where(AccrualRun.run_month == run_month)
        )
        if existing.scalar() is not None:
            raise ConflictError("run_month", run_month.isoformat())

        policy = await PolicyService.get_policy(db)
        summary = AccrualSummary(
            run_type=AccrualRunType.carry_forward if as_of.month == 1 else AccrualRunType.monthly
        )

        result = await db.execute(
            select(Employee.id, Employee.joining_date)
            .where(Employee.is_active.is_(True))
            .order_by(Employee.joining_date, Employee.id)
        )
        for employee_id, joining_date in result.all():
            if joining_date >= run_month:
                # Joined this month (or later): first credit comes next month.
                continue
            try:
                async with db.begin_nested():
                    await AccrualEngine._apply_to_employee(
                        db, employee_id, policy, as_of, summary
                    )
            except ConcurrencyConflict:
                summary.failures.append(
                    {
                        "employee_id": str(employee_id),
                        "reason": "employee was updated concurrently; not credited",
                    }
                )
                logger.warning("Accrual skipped for %s: concurrent update", employee_id)

        run = AccrualRun(
            run_month=run_month,
            as_of=as_of,
            run_type=summary.run_type,
            status=(
                AccrualRunStatus.completed_with_failures
                if summary.failures
                else AccrualRunStatus.completed
            ),
            employees_processed=summary.employees_processed,
            total_credited=summary.total_credited,
            failures=summary.failures,
            triggered_by=actor_id,
        )
        db.add(run)
        await db.flush()

        await create_audit_entry(
            db,
            action="accrual",
            entity_type="accrual_run",
            entity_id=run.id,
            actor_id=actor_id,
            new_values={
                "run_type": summary.run_type.value,
                "as_of": as_of.isoformat(),
                "employees_processed": summary.employees_processed,
                "total_credited": str(summary.total_credited),
                "failures": len(summary.failures),
            },
        )

        logger.info(
            "Accrual %s for %s: %d employee(s), %s day(s) credited, %d failure(s)",
            summary.run_type.value, run_month.strftime("%Y-%m"),
            summary.employees_processed, summary.total_credited, len(summary.failures),
        )
        return AccrualRunOut.model_validate(run)

    @staticmethod
    async def get_accrual_info(
        db: AsyncSession,
        *,
        today: Optional[date] = None,
    ) -> AccrualInfoOut:
        today = today or local_today()
        policy = await PolicyService.get_policy(db)

        result = await db.execute(
            select(AccrualRun).order_by(AccrualRun.run_month.desc()).limit(RECENT_RUNS)
        )
        runs = [AccrualRunOut.model_validate(r) for r in result.scalars().all()]
        return AccrualInfoOut(
            last_run=runs[0] if runs else None,
            next_run=first_of_next_month(today),
            rates=policy.accrual_rates,
            history=runs,
        )
