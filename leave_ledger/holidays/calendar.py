"""Working-day calendar: weekend set + holiday list, and the day counter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from leave_ledger.common.constants import DEFAULT_WEEKEND_DAYS

HALF_DAY = Decimal("0.5")


@dataclass(frozen=True)
class HolidayCalendar:
    """Pure lookup of non-working days.

    ``weekend_days`` uses ``date.weekday()`` numbering (0=Mon … 6=Sun).
    ``holidays`` maps date → holiday name.
    """

    holidays: Mapping[date, str] = field(default_factory=dict)
    weekend_days: frozenset[int] = frozenset(DEFAULT_WEEKEND_DAYS)

    @classmethod
    def build(
        cls,
        holidays: Iterable[tuple[date, str]] = (),
        weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS,
    ) -> "HolidayCalendar":
        return cls(holidays=dict(holidays), weekend_days=frozenset(weekend_days))

    def is_weekend(self, day: date) -> bool:
        return day.weekday() in self.weekend_days

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays

    def is_non_working(self, day: date) -> bool:
        return self.is_weekend(day) or self.is_holiday(day)

    def holiday_name(self, day: date) -> Optional[str]:
        return self.holidays.get(day)


def count_working_days(
    start: date,
    end: date,
    is_half_day: bool,
    calendar: HolidayCalendar,
) -> Decimal:
    """Count working days in the inclusive span ``start``..``end``.

    A half-day request only makes sense for a single day: it subtracts 0.5
    when the span is one day long and that day is a working day.
    Malformed spans (``end < start``) yield 0 rather than raising.
    """

    if end < start:
        return Decimal("0")

    total = Decimal("0")
    current = start
    while current <= end:
        if not calendar.is_non_working(current):
            total += 1
        current += timedelta(days=1)

    if is_half_day and start == end and total > 0:
        total -= HALF_DAY
    return total
