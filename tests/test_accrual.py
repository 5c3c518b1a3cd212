"""Accrual engine — pure planning plus the monthly batch against the DB."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.accrual.service import (
    AccrualEngine,
    first_of_next_month,
    plan_accrual,
)
from leave_ledger.common.audit import AuditTrail
from leave_ledger.common.constants import (
    AccrualRunStatus,
    AccrualRunType,
    BalanceBucket,
    EmploymentType,
)
from leave_ledger.common.exceptions import ConflictError
from leave_ledger.employees.service import EmployeeService
from leave_ledger.policy.schemas import (
    LOPSettings,
    PolicyConfig,
    PolicyConfigUpdate,
    SystemSettings,
)
from leave_ledger.policy.service import PolicyService
from tests.factories import build_employee, bump_version_after_load, seed_employee

POLICY = PolicyConfig()
MARCH = date(2025, 3, 15)
JANUARY = date(2025, 1, 5)


# ═════════════════════════════════════════════════════════════════════
# 1. plan_accrual — pure logic tests (no DB)
# ═════════════════════════════════════════════════════════════════════


class TestPlanAccrual:

    def test_monthly_credit_rounds_half_up(self):
        """sick 5→6, casual 2→2.7, vacation 10→11.7, academic 3→4.3."""
        emp = build_employee(sick="5", casual="2", vacation="10", academic="3")
        plan = plan_accrual(emp, POLICY, MARCH)
        assert plan.balances[BalanceBucket.sick] == Decimal("6")
        assert plan.balances[BalanceBucket.casual] == Decimal("2.7")
        assert plan.balances[BalanceBucket.vacation] == Decimal("11.7")
        assert plan.balances[BalanceBucket.academic] == Decimal("4.3")
        assert plan.credited == Decimal("4.7")
        assert plan.lop_days == Decimal("0")
        assert plan.carry_forward is None
        # Pure: the employee is untouched.
        assert emp.sick_balance == Decimal("5")

    def test_capped_at_quota(self):
        emp = build_employee(sick="11.5", casual="8", vacation="20", academic="15")
        plan = plan_accrual(emp, POLICY, MARCH)
        assert plan.balances[BalanceBucket.sick] == Decimal("12")
        assert plan.balances[BalanceBucket.casual] == Decimal("8")
        assert plan.credited == Decimal("0.5")

    def test_intern_rates(self):
        emp = build_employee(
            employment_type=EmploymentType.intern,
            sick="1", casual="1", vacation="0", academic="1",
        )
        plan = plan_accrual(emp, POLICY, MARCH)
        assert plan.balances[BalanceBucket.sick] == Decimal("1.5")
        assert plan.balances[BalanceBucket.vacation] == Decimal("0")
        assert plan.balances[BalanceBucket.academic] == Decimal("1.8")

    def test_negative_balance_becomes_lop(self):
        """casual -1.5 + 0.67 = -0.83 → -0.8 → 0.8 LOP, casual 0."""
        emp = build_employee(casual="-1.5")
        plan = plan_accrual(emp, POLICY, MARCH)
        assert plan.balances[BalanceBucket.casual] == Decimal("0")
        assert plan.lop_days == Decimal("0.8")

    def test_january_carry_forward_split(self):
        """10 + 5 + 10 = 25, capped at 15 → 6 / 4.5 / 4.5."""
        emp = build_employee(sick="10", casual="5", vacation="10", academic="7")
        plan = plan_accrual(emp, POLICY, JANUARY)
        assert plan.carry_forward == Decimal("15")
        assert plan.balances[BalanceBucket.sick] == Decimal("6.0")
        assert plan.balances[BalanceBucket.casual] == Decimal("4.5")
        assert plan.balances[BalanceBucket.vacation] == Decimal("4.5")
        assert plan.balances[BalanceBucket.academic] == Decimal("7")

    def test_january_below_cap(self):
        emp = build_employee(sick="2", casual="3", vacation="5")
        plan = plan_accrual(emp, POLICY, JANUARY)
        assert plan.carry_forward == Decimal("10")
        assert plan.balances[BalanceBucket.sick] == Decimal("4")

    def test_next_run_rolls_over_year(self):
        assert first_of_next_month(date(2025, 12, 20)) == date(2026, 1, 1)
        assert first_of_next_month(date(2025, 3, 1)) == date(2025, 4, 1)


# ═════════════════════════════════════════════════════════════════════
# 2. run_accrual — batch against the DB
# ═════════════════════════════════════════════════════════════════════


class TestRunAccrual:

    async def test_monthly_run(self, db: AsyncSession):
        emp = await seed_employee(db, sick="5", casual="2", vacation="10", academic="3")
        run = await AccrualEngine.run_accrual(db, MARCH)

        assert run.run_type == AccrualRunType.monthly
        assert run.status == AccrualRunStatus.completed
        assert run.run_month == date(2025, 3, 1)
        assert run.employees_processed == 1
        assert run.total_credited == Decimal("4.7")

        reloaded = await EmployeeService.get_employee(db, emp.id, for_update=True)
        assert reloaded.casual_balance == Decimal("2.7")
        assert reloaded.academic_balance == Decimal("4.3")

        result = await db.execute(select(AuditTrail.action).where(AuditTrail.entity_id == run.id))
        assert result.scalars().all() == ["accrual"]

    async def test_skips_new_joiners_and_inactive(self, db: AsyncSession):
        await seed_employee(db, email="new@example.com", joining_date=date(2025, 3, 10), sick="0")
        await seed_employee(db, email="gone@example.com", is_active=False, sick="0")
        run = await AccrualEngine.run_accrual(db, MARCH)
        assert run.employees_processed == 0

    async def test_same_month_refused(self, db: AsyncSession, test_employee):
        await AccrualEngine.run_accrual(db, date(2025, 3, 1))
        with pytest.raises(ConflictError):
            await AccrualEngine.run_accrual(db, date(2025, 3, 28))
        reloaded = await EmployeeService.get_employee(db, test_employee.id, for_update=True)
        assert reloaded.sick_balance == Decimal("12")

    async def test_january_run(self, db: AsyncSession):
        emp = await seed_employee(db, sick="10", casual="5", vacation="10")
        run = await AccrualEngine.run_accrual(db, JANUARY)
        assert run.run_type == AccrualRunType.carry_forward

        reloaded = await EmployeeService.get_employee(db, emp.id, for_update=True)
        assert reloaded.carry_forward_days == Decimal("15")
        assert reloaded.sick_balance == Decimal("6")

    async def test_negative_balance_charged_as_lop(self, db: AsyncSession):
        emp = await seed_employee(db, casual="-1.5")
        await AccrualEngine.run_accrual(db, MARCH)
        reloaded = await EmployeeService.get_employee(db, emp.id, for_update=True)
        assert reloaded.casual_balance == Decimal("0")
        assert reloaded.lop_balance == Decimal("0.8")
        assert reloaded.yearly_lop == Decimal("0.8")
        assert len(reloaded.lop_history) == 1

    async def test_lop_cap_failure_skips_employee(self, db: AsyncSession):
        """casual -6 + 0.67 → 5.3 LOP, over the monthly cap of 5."""
        bad = await seed_employee(db, email="bad@example.com", casual="-6")
        good = await seed_employee(db, email="good@example.com", sick="5")

        run = await AccrualEngine.run_accrual(db, MARCH)
        assert run.status == AccrualRunStatus.completed_with_failures
        assert run.employees_processed == 1
        assert [f.employee_id for f in run.failures] == [bad.id]

        untouched = await EmployeeService.get_employee(db, bad.id, for_update=True)
        assert untouched.casual_balance == Decimal("-6")
        assert untouched.lop_balance == Decimal("0")
        credited = await EmployeeService.get_employee(db, good.id, for_update=True)
        assert credited.sick_balance == Decimal("6")

    async def test_stale_employee_recorded_and_batch_continues(
        self, db: AsyncSession, monkeypatch
    ):
        raced = await seed_employee(db, email="raced@example.com", sick="5")
        calm = await seed_employee(db, email="calm@example.com", sick="5")
        bump_version_after_load(monkeypatch, raced.id)

        run = await AccrualEngine.run_accrual(db, MARCH)
        monkeypatch.undo()

        assert run.status == AccrualRunStatus.completed_with_failures
        assert run.employees_processed == 1
        assert [f.employee_id for f in run.failures] == [raced.id]

        untouched = await EmployeeService.get_employee(db, raced.id, for_update=True)
        assert untouched.sick_balance == Decimal("5")
        credited = await EmployeeService.get_employee(db, calm.id, for_update=True)
        assert credited.sick_balance == Decimal("6")

    async def test_lop_cap_ignored_when_not_restricted(self, db: AsyncSession):
        await PolicyService.update_policy(
            db,
            PolicyConfigUpdate(
                system_settings=SystemSettings(
                    lop_settings=LOPSettings(restrict_leave_after_max_lop=False)
                )
            ),
        )
        emp = await seed_employee(db, casual="-6")
        run = await AccrualEngine.run_accrual(db, MARCH)
        assert run.failures == []
        reloaded = await EmployeeService.get_employee(db, emp.id, for_update=True)
        assert reloaded.lop_balance == Decimal("5.3")


class TestAccrualInfo:

    async def test_info_without_runs(self, db: AsyncSession):
        info = await AccrualEngine.get_accrual_info(db, today=date(2025, 3, 20))
        assert info.last_run is None
        assert info.next_run == date(2025, 4, 1)
        assert info.rates.regular.casual == Decimal("0.67")

    async def test_history_newest_first(self, db: AsyncSession, test_employee):
        actor = uuid.uuid4()
        await AccrualEngine.run_accrual(db, date(2025, 2, 1), actor_id=actor)
        await AccrualEngine.run_accrual(db, MARCH, actor_id=actor)
        info = await AccrualEngine.get_accrual_info(db, today=MARCH)
        assert info.last_run.run_month == date(2025, 3, 1)
        assert [r.run_month for r in info.history] == [date(2025, 3, 1), date(2025, 2, 1)]
