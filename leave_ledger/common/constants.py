"""Enums and constants for the leave ledger — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum
from decimal import Decimal
from typing import Optional


# ── Employee ────────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    admin = "admin"


class EmploymentType(str, enum.Enum):
    regular = "regular"
    intern = "intern"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    sick = "sick"
    casual = "casual"
    vacation = "vacation"
    comp_off = "compOff"
    lop = "lop"
    wfh = "wfh"
    academic = "academic"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class LeaveAction(str, enum.Enum):
    applied = "applied"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class TransitionAction(str, enum.Enum):
    approve = "approve"
    reject = "reject"


class BalanceBucket(str, enum.Enum):
    """Balance fields held on an employee record."""

    sick = "sick"
    casual = "casual"
    vacation = "vacation"
    academic = "academic"
    comp_off = "compOff"
    lop = "lop"


# Exhaustive: every LeaveType maps to the bucket it draws from (None = no balance).
LEAVE_TYPE_BUCKET: dict[LeaveType, Optional[BalanceBucket]] = {
    LeaveType.sick: BalanceBucket.sick,
    LeaveType.casual: BalanceBucket.casual,
    LeaveType.vacation: BalanceBucket.vacation,
    LeaveType.comp_off: BalanceBucket.comp_off,
    LeaveType.lop: BalanceBucket.lop,
    LeaveType.wfh: None,
    LeaveType.academic: BalanceBucket.academic,
}

_missing = set(LeaveType) - set(LEAVE_TYPE_BUCKET)
if _missing:
    raise RuntimeError(f"LEAVE_TYPE_BUCKET is missing leave types: {sorted(m.value for m in _missing)}")

# Column on ``Employee`` holding each bucket.
BUCKET_COLUMNS: dict[BalanceBucket, str] = {
    BalanceBucket.sick: "sick_balance",
    BalanceBucket.casual: "casual_balance",
    BalanceBucket.vacation: "vacation_balance",
    BalanceBucket.academic: "academic_balance",
    BalanceBucket.comp_off: "comp_off_balance",
    BalanceBucket.lop: "lop_balance",
}

# Leave types that never touch a spendable balance on approval.
NON_DEDUCTIBLE_TYPES = frozenset({LeaveType.wfh, LeaveType.lop})

# Buckets credited by the monthly accrual.
ACCRUAL_BUCKETS: tuple[BalanceBucket, ...] = (
    BalanceBucket.sick,
    BalanceBucket.casual,
    BalanceBucket.vacation,
    BalanceBucket.academic,
)

# January opening balance split of the carried-forward total.
CARRY_FORWARD_SPLIT: dict[BalanceBucket, Decimal] = {
    BalanceBucket.sick: Decimal("0.4"),
    BalanceBucket.casual: Decimal("0.3"),
    BalanceBucket.vacation: Decimal("0.3"),
}


# ── Policy ──────────────────────────────────────────────────────────

class LOPResetPeriod(str, enum.Enum):
    monthly = "monthly"
    yearly = "yearly"


class HolidayType(str, enum.Enum):
    national = "national"
    regional = "regional"
    optional = "optional"


class AccrualRunType(str, enum.Enum):
    monthly = "monthly"
    carry_forward = "carry_forward"


class AccrualRunStatus(str, enum.Enum):
    completed = "completed"
    completed_with_failures = "completed_with_failures"


# ── Misc constants ──────────────────────────────────────────────────

POLICY_SETTING_KEY = "leave_policy"
MAX_COMP_OFF_CREDIT = Decimal("5")
DEFAULT_WEEKEND_DAYS = (5, 6)     # Saturday, Sunday (date.weekday())
ONE_DECIMAL = Decimal("0.1")
