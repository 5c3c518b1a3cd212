"""Leave service layer — application, approval, cancellation, balances, comp-off.

Business logic:
  - Leave application through the validation engine (overlap, calendar,
    notice, sick cut-off, academic rules, LOP affordability)
  - Approve / reject as a compare-and-set on ``status``; approval re-checks
    LOP affordability against committed state before deducting
  - Cancellation before the start date with exact balance restoration
  - Comp-off credits and the balance / LOP status views
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from leave_ledger.common.audit import create_audit_entry
from leave_ledger.common.clock import local_now
from leave_ledger.common.constants import (
    MAX_COMP_OFF_CREDIT,
    BalanceBucket,
    LeaveAction,
    LeaveStatus,
    LeaveType,
    TransitionAction,
)
from leave_ledger.common.exceptions import (
    ConcurrencyConflict,
    LeaveValidationError,
    NotFoundException,
    StateError,
    ValidationException,
)
from leave_ledger.common.locks import employee_lock
from leave_ledger.common.pagination import (
    PaginatedResponse,
    PaginationParams,
    paginate,
)
from leave_ledger.employees.models import Employee
from leave_ledger.employees.service import EmployeeService
from leave_ledger.holidays.service import HolidayService
from leave_ledger.leave import events, ledger, lop
from leave_ledger.leave.models import LeaveRequest
from leave_ledger.leave.schemas import (
    BalanceOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LOPHistoryOut,
    LOPStatusOut,
)
from leave_ledger.leave.validation import LIVE_STATUSES, LeaveDraft, validate
from leave_ledger.policy.service import PolicyService

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: applications, transitions, balances, comp-off."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _get_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        return leave_req

    @staticmethod
    async def _compare_and_set(
        db: AsyncSession,
        leave_req: LeaveRequest,
        expected: LeaveStatus,
        **values,
    ) -> None:
        """Move ``leave_req`` out of ``expected`` or raise :class:`StateError`."""
        result = await db.execute(
            update(LeaveRequest)
            .where(LeaveRequest.id == leave_req.id, LeaveRequest.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StateError()
        await db.refresh(leave_req)

    @staticmethod
    async def _flush(db: AsyncSession, employee: Employee) -> None:
        try:
            await db.flush()
        except StaleDataError as exc:
            raise ConcurrencyConflict("Employee", employee.id) from exc

    @staticmethod
    def _balance_out(employee: Employee) -> BalanceOut:
        return BalanceOut(
            employee_id=employee.id,
            balances={b.value: v for b, v in ledger.balances(employee).items()},
            carry_forward_days=Decimal(employee.carry_forward_days or 0),
        )

    # ─────────────────────────────────────────────────────────────────
    # Apply
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def apply_leave(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveRequestCreate,
        *,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        """Validate and record a new leave request.

        WFH requests are approved on creation and never touch a balance.
        The insert also bumps the employee version, so of two overlapping
        applies that read the same state only one can commit.
        """

        now = now or local_now()

        await EmployeeService.get_employee(db, employee_id)
        async with employee_lock(employee_id):
            employee = await EmployeeService.get_employee(db, employee_id, for_update=True)
            if not employee.is_active:
                raise LeaveValidationError(
                    "inactive_employee", "Inactive employees cannot apply for leave."
                )

            policy = await PolicyService.get_policy(db)
            calendar = await HolidayService.load_calendar(
                db, data.start_date, data.end_date, policy.system_settings.weekend_days
            )

            existing = await db.execute(
                select(LeaveRequest).where(
                    LeaveRequest.employee_id == employee_id,
                    LeaveRequest.status.in_(list(LIVE_STATUSES)),
                    LeaveRequest.comp_off_days.is_(None),
                    LeaveRequest.start_date <= data.end_date,
                    LeaveRequest.end_date >= data.start_date,
                )
            )

            documents = [d.model_dump(mode="json") for d in data.documents]
            draft = LeaveDraft(
                leave_type=data.leave_type,
                start_date=data.start_date,
                end_date=data.end_date,
                reason=data.reason,
                is_half_day=data.is_half_day,
                documents=tuple(documents),
            )
            outcome = validate(
                employee, draft, policy, calendar, existing.scalars().all(), now
            )
            if not outcome.accepted:
                logger.info(
                    "Leave application rejected for %s: %s",
                    employee_id, outcome.failure.rule,
                )
            outcome.raise_for_failure()

            auto_approve = data.leave_type == LeaveType.wfh
            leave_req = LeaveRequest(
                employee_id=employee_id,
                leave_type=data.leave_type,
                start_date=data.start_date,
                end_date=data.end_date,
                is_half_day=data.is_half_day,
                reason=data.reason,
                status=LeaveStatus.approved if auto_approve else LeaveStatus.pending,
                working_days=outcome.working_days,
                lop_days_attributed=outcome.lop_days,
                balance_deducted=False,
                documents=documents,
                approved_on=now if auto_approve else None,
            )
            db.add(leave_req)
            # Bump the employee version: a concurrent apply that read the same
            # requests then fails its flush.
            employee.updated_at = now
            flag_modified(employee, "updated_at")
            await LeaveService._flush(db, employee)

            for warning in outcome.warnings:
                logger.warning("Leave %s for %s: %s", leave_req.id, employee_id, warning)

            await create_audit_entry(
                db,
                action="apply",
                entity_type="leave_request",
                entity_id=leave_req.id,
                actor_id=employee_id,
                new_values={
                    "leave_type": data.leave_type.value,
                    "start_date": data.start_date.isoformat(),
                    "end_date": data.end_date.isoformat(),
                    "status": leave_req.status.value,
                    "working_days": str(outcome.working_days),
                    "lop_days": str(outcome.lop_days),
                    "warnings": list(outcome.warnings),
                },
            )

        logger.info(
            "Leave applied: %s %s..%s (%s day(s)) for %s",
            data.leave_type.value, data.start_date, data.end_date,
            outcome.working_days, employee_id,
        )
        await events.publish(
            leave_req, LeaveAction.approved if auto_approve else LeaveAction.applied
        )
        return leave_req

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def transition_status(
        db: AsyncSession,
        request_id: uuid.UUID,
        action: TransitionAction,
        actor_id: uuid.UUID,
        reason: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        """Approve or reject a pending request."""

        now = now or local_now()
        if action == TransitionAction.approve:
            return await LeaveService._approve(db, request_id, actor_id, now)
        return await LeaveService._reject(db, request_id, actor_id, reason, now)

    @staticmethod
    async def _approve(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor_id: uuid.UUID,
        now: datetime,
    ) -> LeaveRequest:
        leave_req = await LeaveService._get_request(db, request_id)
        if leave_req.status != LeaveStatus.pending:
            raise StateError()

        today = now.date()
        async with employee_lock(leave_req.employee_id):
            employee = await EmployeeService.get_employee(
                db, leave_req.employee_id, for_update=True
            )
            policy = await PolicyService.get_policy(db)

            lop_days = ledger.shortfall(
                employee, leave_req.leave_type, Decimal(leave_req.working_days)
            )
            if (
                lop.would_exceed(employee, lop_days, policy, today)
                and policy.system_settings.lop_settings.restrict_leave_after_max_lop
            ):
                raise LeaveValidationError(
                    "lop_limit",
                    f"Approving would add {lop_days} LOP day(s) beyond the "
                    f"configured limits.",
                )

            await LeaveService._compare_and_set(
                db,
                leave_req,
                LeaveStatus.pending,
                status=LeaveStatus.approved,
                approved_by=actor_id,
                approved_on=now,
                updated_at=now,
            )
            ledger.deduct(employee, leave_req, policy, today)
            await LeaveService._flush(db, employee)

            await create_audit_entry(
                db,
                action="approve",
                entity_type="leave_request",
                entity_id=leave_req.id,
                actor_id=actor_id,
                old_values={"status": LeaveStatus.pending.value},
                new_values={
                    "status": LeaveStatus.approved.value,
                    "working_days": str(leave_req.working_days),
                    "lop_days_attributed": str(leave_req.lop_days_attributed),
                },
            )

        logger.info(
            "Leave %s approved by %s (%s LOP day(s))",
            leave_req.id, actor_id, leave_req.lop_days_attributed,
        )
        await events.publish(leave_req, LeaveAction.approved)
        return leave_req

    @staticmethod
    async def _reject(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor_id: uuid.UUID,
        reason: Optional[str],
        now: datetime,
    ) -> LeaveRequest:
        leave_req = await LeaveService._get_request(db, request_id)
        if leave_req.status != LeaveStatus.pending:
            raise StateError()

        await LeaveService._compare_and_set(
            db,
            leave_req,
            LeaveStatus.pending,
            status=LeaveStatus.rejected,
            rejected_by=actor_id,
            rejected_on=now,
            rejection_reason=reason,
            updated_at=now,
        )

        await create_audit_entry(
            db,
            action="reject",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor_id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": LeaveStatus.rejected.value, "reason": reason},
        )

        logger.info("Leave %s rejected by %s", leave_req.id, actor_id)
        await events.publish(leave_req, LeaveAction.rejected)
        return leave_req

    # ─────────────────────────────────────────────────────────────────
    # Cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor_id: uuid.UUID,
        reason: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        """Cancel a pending or approved request before it starts.

        An approved request that was charged gets its days back: attributed
        LOP is released first, the rest returns to the original bucket.
        """

        now = now or local_now()
        today = now.date()

        leave_req = await LeaveService._get_request(db, request_id)
        if leave_req.status not in LIVE_STATUSES:
            raise StateError()
        if leave_req.comp_off_days is not None:
            raise StateError("Comp-off credit entries cannot be cancelled.")
        if today >= leave_req.start_date:
            raise StateError("Leave can only be cancelled before its start date.")

        previous = leave_req.status
        async with employee_lock(leave_req.employee_id):
            employee = await EmployeeService.get_employee(
                db, leave_req.employee_id, for_update=True
            )
            policy = await PolicyService.get_policy(db)

            await LeaveService._compare_and_set(
                db,
                leave_req,
                previous,
                status=LeaveStatus.cancelled,
                cancelled_by=actor_id,
                cancelled_on=now,
                cancellation_reason=reason,
                updated_at=now,
            )
            restored = leave_req.balance_deducted
            if previous == LeaveStatus.approved:
                ledger.restore(employee, leave_req, policy, today)
            await LeaveService._flush(db, employee)

            await create_audit_entry(
                db,
                action="cancel",
                entity_type="leave_request",
                entity_id=leave_req.id,
                actor_id=actor_id,
                old_values={"status": previous.value},
                new_values={
                    "status": LeaveStatus.cancelled.value,
                    "reason": reason,
                    "balance_restored": restored,
                },
            )

        logger.info("Leave %s cancelled by %s (was %s)", leave_req.id, actor_id, previous.value)
        await events.publish(leave_req, LeaveAction.cancelled)
        return leave_req

    # ─────────────────────────────────────────────────────────────────
    # Balances / LOP status
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_balance(db: AsyncSession, employee_id: uuid.UUID) -> BalanceOut:
        employee = await EmployeeService.get_employee(db, employee_id)
        return LeaveService._balance_out(employee)

    @staticmethod
    async def get_lop_status(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        now: Optional[datetime] = None,
    ) -> LOPStatusOut:
        """LOP counters after any due period reset, with limits and history."""

        today = (now or local_now()).date()
        await EmployeeService.get_employee(db, employee_id)
        async with employee_lock(employee_id):
            employee = await EmployeeService.get_employee(db, employee_id, for_update=True)
            policy = await PolicyService.get_policy(db)
            limits = lop.check_limits(employee, policy, today)
            await LeaveService._flush(db, employee)

        return LOPStatusOut(
            employee_id=employee.id,
            yearly_lop=limits.yearly_lop,
            monthly_lop=limits.monthly_lop,
            max_yearly_lop=limits.max_yearly_lop,
            max_monthly_lop=limits.max_monthly_lop,
            exceeds_yearly_limit=limits.exceeds_yearly,
            exceeds_monthly_limit=limits.exceeds_monthly,
            near_threshold=limits.near_threshold,
            total_lop_balance=ledger.get_balance(employee, BalanceBucket.lop),
            history=[LOPHistoryOut.model_validate(h) for h in employee.lop_history],
        )

    # ─────────────────────────────────────────────────────────────────
    # Comp-off credit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def add_comp_off_credit(
        db: AsyncSession,
        employee_id: uuid.UUID,
        days: Decimal,
        reason: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> BalanceOut:
        """Credit comp-off days and record the credit as an approved entry."""

        if days <= 0 or days > MAX_COMP_OFF_CREDIT:
            raise ValidationException(
                {"days": [f"Comp-off credit must be more than 0 and at most {MAX_COMP_OFF_CREDIT} days."]}
            )

        now = now or local_now()
        await EmployeeService.get_employee(db, employee_id)
        async with employee_lock(employee_id):
            employee = await EmployeeService.get_employee(db, employee_id, for_update=True)
            if not employee.is_active:
                raise ValidationException({"employee_id": ["Employee is inactive."]})

            before = ledger.get_balance(employee, BalanceBucket.comp_off)
            after = ledger.credit(employee, BalanceBucket.comp_off, days)

            entry = LeaveRequest(
                employee_id=employee_id,
                leave_type=LeaveType.comp_off,
                start_date=now.date(),
                end_date=now.date(),
                is_half_day=False,
                reason=reason,
                status=LeaveStatus.approved,
                working_days=Decimal("0"),
                lop_days_attributed=Decimal("0"),
                balance_deducted=False,
                documents=[],
                comp_off_days=days,
                approved_by=actor_id,
                approved_on=now,
            )
            db.add(entry)
            await LeaveService._flush(db, employee)

            await create_audit_entry(
                db,
                action="credit",
                entity_type="employee",
                entity_id=employee.id,
                actor_id=actor_id,
                old_values={"comp_off_balance": str(before)},
                new_values={"comp_off_balance": str(after), "reason": reason},
            )

        logger.info("Comp-off +%s for %s (balance %s)", days, employee_id, after)
        return LeaveService._balance_out(employee)

    # ─────────────────────────────────────────────────────────────────
    # Listing
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_leave_requests(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
    ) -> PaginatedResponse[LeaveRequestOut]:
        query = select(LeaveRequest).order_by(
            LeaveRequest.start_date.desc(), LeaveRequest.created_at.desc()
        )
        if employee_id is not None:
            query = query.where(LeaveRequest.employee_id == employee_id)
        if status is not None:
            query = query.where(LeaveRequest.status == status)

        rows, meta = await paginate(db, query, pagination, model=LeaveRequest)
        return PaginatedResponse[LeaveRequestOut](
            data=[LeaveRequestOut.model_validate(r) for r in rows],
            meta=meta,
        )
