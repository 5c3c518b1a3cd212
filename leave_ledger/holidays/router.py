"""Holiday router — list, add and remove holidays."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.clock import local_today
from leave_ledger.database import get_db
from leave_ledger.holidays.schemas import HolidayCreate, HolidayOut
from leave_ledger.holidays.service import HolidayService

router = APIRouter(prefix="", tags=["holidays"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[HolidayOut])
async def list_holidays(
    year: Optional[int] = Query(None, ge=1900, le=2999),
    db: AsyncSession = Depends(get_db),
):
    """Active holidays for ``year`` (default: current year)."""
    return await HolidayService.list_holidays(db, year or local_today().year)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=HolidayOut, status_code=201)
async def add_holiday(
    body: HolidayCreate,
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.add_holiday(db, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{holiday_id}", status_code=204)
async def remove_holiday(
    holiday_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await HolidayService.remove_holiday(db, holiday_id)
