"""PolicyConfig — the immutable policy snapshot every ledger operation receives.

Loaded by :mod:`leave_ledger.policy.service` from the ``app_settings`` table
(or built from defaults) and passed explicitly into validation, the ledger,
the LOP tracker and the accrual engine.
"""

from __future__ import annotations

from datetime import time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leave_ledger.common.constants import (
    DEFAULT_WEEKEND_DAYS,
    BalanceBucket,
    EmploymentType,
    LeaveType,
    LOPResetPeriod,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class BucketAmounts(_Frozen):
    """Per-bucket amounts for one employment type (quota or monthly rate)."""

    sick: Decimal = Decimal("0")
    casual: Decimal = Decimal("0")
    vacation: Decimal = Decimal("0")
    academic: Decimal = Decimal("0")

    def for_bucket(self, bucket: BalanceBucket) -> Decimal:
        return getattr(self, bucket.value, Decimal("0"))


class EmploymentTypeAmounts(_Frozen):
    regular: BucketAmounts
    intern: BucketAmounts

    def for_type(self, employment_type: EmploymentType) -> BucketAmounts:
        return getattr(self, employment_type.value)


class AdvanceNotice(_Frozen):
    """Minimum calendar days between application and start, per leave type."""

    casual: int = 7
    vacation: int = 7
    academic: int = 14

    def for_type(self, leave_type: LeaveType) -> Optional[int]:
        return getattr(self, leave_type.value, None)


class LOPSettings(_Frozen):
    lop_reset_period: LOPResetPeriod = LOPResetPeriod.yearly
    restrict_leave_after_max_lop: bool = True
    lop_alert_threshold: Decimal = Decimal("5")


class AcademicLeaveSettings(_Frozen):
    require_documents: bool = True
    max_documents: int = 5
    min_advance_notice_days: int = 14
    max_consecutive_days: int = 30
    min_reason_length: int = 10


class SystemSettings(_Frozen):
    max_lop_days_yearly: Decimal = Decimal("10")
    max_lop_days_per_month: Decimal = Decimal("5")
    carry_forward_cap: Decimal = Decimal("15")
    advance_notice_days: AdvanceNotice = Field(default_factory=AdvanceNotice)
    sick_same_day_cutoff_time: time = time(11, 0)
    weekend_days: tuple[int, ...] = DEFAULT_WEEKEND_DAYS
    lop_settings: LOPSettings = Field(default_factory=LOPSettings)
    academic_leave_settings: AcademicLeaveSettings = Field(
        default_factory=AcademicLeaveSettings
    )

    @field_validator("weekend_days")
    @classmethod
    def weekday_numbers(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("weekend_days must be weekday numbers 0 (Mon) … 6 (Sun).")
        return tuple(sorted(set(v)))


def _default_quotas() -> EmploymentTypeAmounts:
    return EmploymentTypeAmounts(
        regular=BucketAmounts(sick=12, casual=8, vacation=20, academic=15),
        intern=BucketAmounts(sick=6, casual=6, vacation=0, academic=10),
    )


def _default_rates() -> EmploymentTypeAmounts:
    return EmploymentTypeAmounts(
        regular=BucketAmounts(
            sick=Decimal("1"),
            casual=Decimal("0.67"),
            vacation=Decimal("1.67"),
            academic=Decimal("1.25"),
        ),
        intern=BucketAmounts(
            sick=Decimal("0.5"),
            casual=Decimal("0.5"),
            vacation=Decimal("0"),
            academic=Decimal("0.83"),
        ),
    )


class PolicyConfig(_Frozen):
    """Complete leave policy snapshot."""

    leave_quotas: EmploymentTypeAmounts = Field(default_factory=_default_quotas)
    accrual_rates: EmploymentTypeAmounts = Field(default_factory=_default_rates)
    system_settings: SystemSettings = Field(default_factory=SystemSettings)


class PolicyConfigUpdate(BaseModel):
    """Partial update payload; omitted sections keep their current value."""

    leave_quotas: Optional[EmploymentTypeAmounts] = None
    accrual_rates: Optional[EmploymentTypeAmounts] = None
    system_settings: Optional[SystemSettings] = None
