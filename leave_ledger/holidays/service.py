"""Holiday service — holiday registry and calendar loading for the ledger."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.constants import HolidayType
from leave_ledger.common.exceptions import ConflictError, NotFoundException
from leave_ledger.holidays.calendar import HolidayCalendar
from leave_ledger.holidays.models import Holiday
from leave_ledger.holidays.schemas import HolidayCreate, HolidayOut

logger = logging.getLogger(__name__)


class HolidayService:
    """Async holiday operations."""

    @staticmethod
    async def list_holidays(db: AsyncSession, year: int) -> list[HolidayOut]:
        """Active holidays for ``year`` in date order."""
        result = await db.execute(
            select(Holiday)
            .where(Holiday.year == year, Holiday.is_active.is_(True))
            .order_by(Holiday.date)
        )
        return [HolidayOut.model_validate(h) for h in result.scalars().all()]

    @staticmethod
    async def add_holiday(db: AsyncSession, data: HolidayCreate) -> HolidayOut:
        existing = await db.execute(select(Holiday.id).where(Holiday.date == data.date))
        if existing.scalar() is not None:
            raise ConflictError("date", data.date.isoformat())

        holiday = Holiday(
            date=data.date,
            name=data.name,
            year=data.date.year,
            type=data.type,
            is_active=True,
        )
        db.add(holiday)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ConflictError("date", data.date.isoformat()) from exc

        logger.info("Holiday added: %s (%s)", data.name, data.date.isoformat())
        return HolidayOut.model_validate(holiday)

    @staticmethod
    async def remove_holiday(db: AsyncSession, holiday_id: uuid.UUID) -> None:
        holiday = await db.get(Holiday, holiday_id)
        if holiday is None:
            raise NotFoundException("Holiday", str(holiday_id))
        await db.delete(holiday)
        await db.flush()

    @staticmethod
    async def load_calendar(
        db: AsyncSession,
        from_date: date,
        to_date: date,
        weekend_days: Iterable[int],
    ) -> HolidayCalendar:
        """Build a :class:`HolidayCalendar` covering ``from_date``..``to_date``.

        Optional holidays are not days off for the ledger and are skipped.
        """

        lo = min(from_date, to_date)
        hi = max(from_date, to_date)

        result = await db.execute(
            select(Holiday.date, Holiday.name).where(
                Holiday.is_active.is_(True),
                Holiday.type != HolidayType.optional,
                Holiday.date >= lo,
                Holiday.date <= hi,
            )
        )
        return HolidayCalendar.build(
            holidays=[(row[0], row[1]) for row in result.all()],
            weekend_days=weekend_days,
        )
