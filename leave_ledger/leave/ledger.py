"""Balance ledger — the only code that moves days in and out of buckets.

Deduction never drives a bucket negative: whatever the bucket cannot cover
goes to the LOP tracker and is remembered on the request as
``lop_days_attributed`` so that :func:`restore` can undo it exactly.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from leave_ledger.common.constants import (
    BUCKET_COLUMNS,
    LEAVE_TYPE_BUCKET,
    BalanceBucket,
    LeaveType,
)
from leave_ledger.employees.models import Employee
from leave_ledger.leave import lop
from leave_ledger.leave.models import LeaveRequest
from leave_ledger.policy.schemas import PolicyConfig

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# ─────────────────────────────────────────────────────────────────────
# Bucket access
# ─────────────────────────────────────────────────────────────────────


def get_balance(employee: Employee, bucket: BalanceBucket) -> Decimal:
    return Decimal(getattr(employee, BUCKET_COLUMNS[bucket]) or 0)


def set_balance(employee: Employee, bucket: BalanceBucket, amount: Decimal) -> None:
    if amount < 0:
        raise ValueError(f"{bucket.value} balance cannot be negative ({amount}).")
    setattr(employee, BUCKET_COLUMNS[bucket], amount)


def balances(employee: Employee) -> dict[BalanceBucket, Decimal]:
    return {bucket: get_balance(employee, bucket) for bucket in BalanceBucket}


def spendable_bucket(leave_type: LeaveType) -> Optional[BalanceBucket]:
    """Bucket a leave type spends from; ``None`` for WFH and LOP leave."""
    bucket = LEAVE_TYPE_BUCKET[leave_type]
    if bucket is BalanceBucket.lop:
        return None
    return bucket


def shortfall(employee: Employee, leave_type: LeaveType, working_days: Decimal) -> Decimal:
    """Days of ``working_days`` the employee's balance cannot cover.

    LOP leave is entirely shortfall; WFH never has any.
    """
    if leave_type == LeaveType.wfh:
        return ZERO
    if leave_type == LeaveType.lop:
        return working_days
    available = get_balance(employee, spendable_bucket(leave_type))
    return max(ZERO, working_days - available)


# ─────────────────────────────────────────────────────────────────────
# Deduct / restore / credit
# ─────────────────────────────────────────────────────────────────────


def deduct(
    employee: Employee,
    leave_request: LeaveRequest,
    config: PolicyConfig,
    today: date,
) -> Decimal:
    """Charge an approved request; return the LOP days attributed to it."""

    leave_type = leave_request.leave_type
    working_days = Decimal(leave_request.working_days)
    if leave_type == LeaveType.wfh:
        return ZERO

    lop_days = shortfall(employee, leave_type, working_days)
    bucket = spendable_bucket(leave_type)
    if bucket is not None:
        available = get_balance(employee, bucket)
        set_balance(employee, bucket, available - (working_days - lop_days))

    lop.add_lop_days(
        employee,
        lop_days,
        f"{leave_type.value} leave {leave_request.start_date.isoformat()}"
        f" to {leave_request.end_date.isoformat()}",
        config,
        today,
        leave_request_id=leave_request.id,
    )

    leave_request.lop_days_attributed = lop_days
    leave_request.balance_deducted = True
    logger.debug(
        "Deducted %s day(s) (%s LOP) for leave %s",
        working_days, lop_days, leave_request.id,
    )
    return lop_days


def restore(
    employee: Employee,
    leave_request: LeaveRequest,
    config: PolicyConfig,
    today: date,
) -> None:
    """Undo :func:`deduct` for a cancelled request, once."""

    if not leave_request.balance_deducted:
        return

    lop_days = Decimal(leave_request.lop_days_attributed or 0)
    lop.release_lop_days(
        employee,
        lop_days,
        f"cancelled {leave_request.leave_type.value} leave "
        f"{leave_request.start_date.isoformat()}",
        config,
        today,
        leave_request_id=leave_request.id,
    )

    remainder = Decimal(leave_request.working_days) - lop_days
    bucket = spendable_bucket(leave_request.leave_type)
    if bucket is not None and remainder > 0:
        set_balance(employee, bucket, get_balance(employee, bucket) + remainder)

    leave_request.balance_deducted = False


def credit(employee: Employee, bucket: BalanceBucket, days: Decimal) -> Decimal:
    """Add ``days`` to ``bucket`` and return the new balance."""
    if days <= 0:
        raise ValueError("Credit must be positive.")
    new_balance = get_balance(employee, bucket) + days
    set_balance(employee, bucket, new_balance)
    return new_balance
