"""LOP tracker — yearly/monthly Loss-of-Pay counters on the employee record.

Counters reset lazily: whenever they are read through :func:`check_limits`
or raised through :func:`add_lop_days`, a period boundary crossed since
``lop_last_reset_date`` zeroes them first. :func:`add_lop_days` is the only
path that raises the counters; :func:`release_lop_days` lowers them again
when a cancellation gives LOP back.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from leave_ledger.common.constants import LOPResetPeriod
from leave_ledger.employees.models import Employee, LOPHistoryEntry
from leave_ledger.policy.schemas import PolicyConfig

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class LOPLimits:
    yearly_lop: Decimal
    monthly_lop: Decimal
    max_yearly_lop: Decimal
    max_monthly_lop: Decimal
    exceeds_yearly: bool
    exceeds_monthly: bool
    near_threshold: bool


def _resets_due(
    employee: Employee, config: PolicyConfig, today: date
) -> tuple[bool, bool]:
    """(monthly_due, yearly_due) for ``today`` relative to the last reset."""
    last = employee.lop_last_reset_date
    if last is None:
        return False, False

    month_changed = (last.year, last.month) != (today.year, today.month)
    period = config.system_settings.lop_settings.lop_reset_period
    if period == LOPResetPeriod.monthly:
        yearly_due = month_changed
    else:
        yearly_due = last.year != today.year
    return month_changed, yearly_due


def current_counters(
    employee: Employee, config: PolicyConfig, today: date
) -> tuple[Decimal, Decimal]:
    """Effective (yearly, monthly) counters as of ``today`` without mutating."""
    monthly_due, yearly_due = _resets_due(employee, config, today)
    yearly = ZERO if yearly_due else Decimal(employee.yearly_lop or 0)
    monthly = ZERO if monthly_due else Decimal(employee.monthly_lop or 0)
    return yearly, monthly


def reset_if_due(employee: Employee, config: PolicyConfig, today: date) -> bool:
    """Apply any pending period reset to ``employee``; return True if one happened."""
    if employee.lop_last_reset_date is None:
        employee.lop_last_reset_date = today
        return False

    monthly_due, yearly_due = _resets_due(employee, config, today)
    if monthly_due:
        employee.monthly_lop = ZERO
    if yearly_due:
        employee.yearly_lop = ZERO
    if monthly_due or yearly_due:
        employee.lop_last_reset_date = today
        logger.debug(
            "LOP counters reset for %s (monthly=%s, yearly=%s)",
            employee.id, monthly_due, yearly_due,
        )
        return True
    return False


def check_limits(employee: Employee, config: PolicyConfig, today: date) -> LOPLimits:
    reset_if_due(employee, config, today)
    settings = config.system_settings
    yearly = Decimal(employee.yearly_lop or 0)
    monthly = Decimal(employee.monthly_lop or 0)
    return LOPLimits(
        yearly_lop=yearly,
        monthly_lop=monthly,
        max_yearly_lop=settings.max_lop_days_yearly,
        max_monthly_lop=settings.max_lop_days_per_month,
        exceeds_yearly=yearly > settings.max_lop_days_yearly,
        exceeds_monthly=monthly > settings.max_lop_days_per_month,
        near_threshold=yearly >= settings.lop_settings.lop_alert_threshold,
    )


def would_exceed(
    employee: Employee,
    additional: Decimal,
    config: PolicyConfig,
    today: date,
) -> bool:
    """True if taking on ``additional`` LOP days would break either cap."""
    if additional <= 0:
        return False
    settings = config.system_settings
    yearly, monthly = current_counters(employee, config, today)
    return (
        yearly + additional > settings.max_lop_days_yearly
        or monthly + additional > settings.max_lop_days_per_month
    )


def add_lop_days(
    employee: Employee,
    days: Decimal,
    reason: str,
    config: PolicyConfig,
    today: date,
    leave_request_id: Optional[uuid.UUID] = None,
) -> Optional[LOPHistoryEntry]:
    """Raise both counters and the ``lop`` bucket by ``days`` and log it."""
    if days <= 0:
        return None

    reset_if_due(employee, config, today)
    employee.yearly_lop = Decimal(employee.yearly_lop or 0) + days
    employee.monthly_lop = Decimal(employee.monthly_lop or 0) + days
    employee.lop_balance = Decimal(employee.lop_balance or 0) + days

    entry = LOPHistoryEntry(
        entry_date=today,
        days=days,
        reason=reason,
        leave_request_id=leave_request_id,
    )
    employee.lop_history.append(entry)
    logger.info("LOP +%s for employee %s: %s", days, employee.id, reason)
    return entry


def release_lop_days(
    employee: Employee,
    days: Decimal,
    reason: str,
    config: PolicyConfig,
    today: date,
    leave_request_id: Optional[uuid.UUID] = None,
) -> Optional[LOPHistoryEntry]:
    """Give back ``days`` of LOP; counters and the bucket never go below zero."""
    if days <= 0:
        return None

    reset_if_due(employee, config, today)
    employee.yearly_lop = max(ZERO, Decimal(employee.yearly_lop or 0) - days)
    employee.monthly_lop = max(ZERO, Decimal(employee.monthly_lop or 0) - days)
    employee.lop_balance = max(ZERO, Decimal(employee.lop_balance or 0) - days)

    entry = LOPHistoryEntry(
        entry_date=today,
        days=-days,
        reason=reason,
        leave_request_id=leave_request_id,
    )
    employee.lop_history.append(entry)
    logger.info("LOP -%s for employee %s: %s", days, employee.id, reason)
    return entry
