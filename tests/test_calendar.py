"""Calendar and working-day counter — pure logic tests (no DB)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from leave_ledger.holidays.calendar import HolidayCalendar, count_working_days

# 2025-03-03 is a Monday; 2025-03-14 (Friday) is Holi.
HOLI = date(2025, 3, 14)


def _calendar(**kwargs) -> HolidayCalendar:
    return HolidayCalendar.build(holidays=[(HOLI, "Holi")], **kwargs)


class TestHolidayCalendar:

    def test_default_weekend_is_saturday_and_sunday(self):
        cal = HolidayCalendar()
        assert cal.is_weekend(date(2025, 3, 8))
        assert cal.is_weekend(date(2025, 3, 9))
        assert not cal.is_weekend(date(2025, 3, 10))

    def test_holiday_lookup(self):
        cal = _calendar()
        assert cal.is_holiday(HOLI)
        assert cal.holiday_name(HOLI) == "Holi"
        assert cal.holiday_name(date(2025, 3, 13)) is None
        assert cal.is_non_working(HOLI)

    def test_custom_weekend(self):
        """Friday-only weekend."""
        cal = HolidayCalendar.build(weekend_days=[4])
        assert cal.is_weekend(date(2025, 3, 7))
        assert not cal.is_weekend(date(2025, 3, 8))


class TestCountWorkingDays:

    def test_full_week(self):
        """Mon–Fri → 5."""
        assert count_working_days(
            date(2025, 3, 3), date(2025, 3, 7), False, _calendar()
        ) == Decimal("5")

    def test_weekend_excluded(self):
        """Mon–Sun → 5."""
        assert count_working_days(
            date(2025, 3, 3), date(2025, 3, 9), False, _calendar()
        ) == Decimal("5")

    def test_holiday_excluded(self):
        """Thu 13 – Mon 17 with Holi on Fri → Thu + Mon."""
        assert count_working_days(
            date(2025, 3, 13), date(2025, 3, 17), False, _calendar()
        ) == Decimal("2")

    def test_single_half_day(self):
        assert count_working_days(
            date(2025, 3, 4), date(2025, 3, 4), True, _calendar()
        ) == Decimal("0.5")

    def test_half_day_ignored_for_multi_day_span(self):
        assert count_working_days(
            date(2025, 3, 4), date(2025, 3, 5), True, _calendar()
        ) == Decimal("2")

    def test_half_day_on_holiday_counts_nothing(self):
        assert count_working_days(HOLI, HOLI, True, _calendar()) == Decimal("0")

    def test_weekend_only_span_is_zero(self):
        assert count_working_days(
            date(2025, 3, 8), date(2025, 3, 9), False, _calendar()
        ) == Decimal("0")

    def test_end_before_start_is_zero(self):
        assert count_working_days(
            date(2025, 3, 7), date(2025, 3, 3), False, _calendar()
        ) == Decimal("0")
