"""Validation engine — ordered, short-circuiting admission rules for a draft.

:func:`validate` is pure: it reads the employee, the policy snapshot, the
calendar and the employee's live requests, and returns a
:class:`ValidationOutcome` describing either the accepted draft (with its
working days and provisional LOP) or the first rule it broke.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from leave_ledger.common.constants import LeaveStatus, LeaveType
from leave_ledger.common.exceptions import LeaveValidationError
from leave_ledger.employees.models import Employee
from leave_ledger.holidays.calendar import HolidayCalendar, count_working_days
from leave_ledger.leave import ledger, lop
from leave_ledger.leave.models import LeaveRequest
from leave_ledger.policy.schemas import PolicyConfig

LIVE_STATUSES = frozenset({LeaveStatus.pending, LeaveStatus.approved})
NOTICE_TYPES = frozenset({LeaveType.casual, LeaveType.vacation})


@dataclass(frozen=True)
class LeaveDraft:
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = ""
    is_half_day: bool = False
    documents: Sequence[dict] = ()


@dataclass(frozen=True)
class ValidationFailure:
    rule: str
    message: str


@dataclass(frozen=True)
class ValidationOutcome:
    draft: LeaveDraft
    failure: Optional[ValidationFailure] = None
    working_days: Decimal = Decimal("0")
    lop_days: Decimal = Decimal("0")
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def accepted(self) -> bool:
        return self.failure is None

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise LeaveValidationError(self.failure.rule, self.failure.message)


def _fail(draft: LeaveDraft, rule: str, message: str) -> ValidationOutcome:
    return ValidationOutcome(draft=draft, failure=ValidationFailure(rule, message))


def overlaps(draft: LeaveDraft, existing: Iterable[LeaveRequest]) -> Optional[LeaveRequest]:
    """First pending/approved request whose span intersects the draft's.

    Comp-off credit entries are bookkeeping, not absences, and never clash.
    """
    for req in existing:
        if req.status not in LIVE_STATUSES or req.comp_off_days is not None:
            continue
        if req.start_date <= draft.end_date and req.end_date >= draft.start_date:
            return req
    return None


def validate(
    employee: Employee,
    draft: LeaveDraft,
    config: PolicyConfig,
    calendar: HolidayCalendar,
    existing_requests: Iterable[LeaveRequest],
    now: datetime,
) -> ValidationOutcome:
    """Run the admission rules in order; stop at the first failure."""

    settings = config.system_settings
    today = now.date()

    # 1. dates
    if draft.end_date < draft.start_date:
        return _fail(draft, "date_range", "End date must be on or after start date.")
    if draft.leave_type == LeaveType.wfh and draft.end_date != draft.start_date:
        return _fail(draft, "wfh_single_day", "Work from home must be requested for a single day.")

    # 2. overlap
    clash = overlaps(draft, existing_requests)
    if clash is not None:
        return _fail(
            draft,
            "overlap",
            "Leave dates overlap with an existing "
            f"{clash.status.value} request ({clash.start_date.isoformat()} to "
            f"{clash.end_date.isoformat()}).",
        )

    # 3. start on a working day
    if draft.leave_type != LeaveType.wfh and calendar.is_non_working(draft.start_date):
        holiday = calendar.holiday_name(draft.start_date)
        what = f"a holiday ({holiday})" if holiday else "a weekend"
        return _fail(draft, "non_working_start", f"Leave cannot start on {what}.")

    days_ahead = (draft.start_date - today).days

    # 4. advance notice
    if draft.leave_type in NOTICE_TYPES:
        required = settings.advance_notice_days.for_type(draft.leave_type) or 0
        if days_ahead < required:
            return _fail(
                draft,
                "advance_notice",
                f"{draft.leave_type.value.capitalize()} leave must be applied "
                f"{required} days in advance.",
            )

    # 5. same-day sick leave cut-off
    if draft.leave_type == LeaveType.sick and days_ahead == 0:
        cutoff = settings.sick_same_day_cutoff_time
        if now.time() > cutoff:
            return _fail(
                draft,
                "sick_cutoff",
                f"Same-day sick leave must be applied before {cutoff.strftime('%H:%M')}.",
            )

    # 6. academic leave
    if draft.leave_type == LeaveType.academic:
        academic = settings.academic_leave_settings
        if academic.require_documents and not draft.documents:
            return _fail(
                draft, "documents_required",
                "Academic leave requires at least one supporting document.",
            )
        if len(draft.documents) > academic.max_documents:
            return _fail(
                draft, "too_many_documents",
                f"At most {academic.max_documents} documents may be attached.",
            )
        span = (draft.end_date - draft.start_date).days + 1
        if span > academic.max_consecutive_days:
            return _fail(
                draft, "max_consecutive_days",
                f"Academic leave cannot exceed {academic.max_consecutive_days} consecutive days.",
            )
        if len(draft.reason.strip()) < academic.min_reason_length:
            return _fail(
                draft, "reason_too_short",
                f"Reason must be at least {academic.min_reason_length} characters.",
            )
        notice = max(
            settings.advance_notice_days.academic, academic.min_advance_notice_days
        )
        if days_ahead < notice:
            return _fail(
                draft, "advance_notice",
                f"Academic leave must be applied {notice} days in advance.",
            )

    # 7. working days and LOP affordability
    working_days = count_working_days(
        draft.start_date, draft.end_date, draft.is_half_day, calendar
    )
    if working_days <= 0:
        return _fail(draft, "zero_working_days", "The selected dates contain no working days.")

    lop_days = ledger.shortfall(employee, draft.leave_type, working_days)
    warnings: list[str] = []
    if lop.would_exceed(employee, lop_days, config, today):
        message = (
            f"{lop_days} LOP day(s) would exceed the limit of "
            f"{settings.max_lop_days_yearly} per year / "
            f"{settings.max_lop_days_per_month} per month."
        )
        if settings.lop_settings.restrict_leave_after_max_lop:
            return _fail(draft, "lop_limit", message)
        warnings.append(message)
    elif lop_days > 0:
        warnings.append(f"Insufficient balance: {lop_days} day(s) will be counted as LOP.")

    return ValidationOutcome(
        draft=draft,
        working_days=working_days,
        lop_days=lop_days,
        warnings=tuple(warnings),
    )
