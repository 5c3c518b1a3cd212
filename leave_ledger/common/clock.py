"""Local wall clock for notice periods, the sick cut-off and cancellation."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from leave_ledger.config import settings


def local_now() -> datetime:
    """Current time in the configured timezone (Asia/Kolkata by default)."""
    return datetime.now(ZoneInfo(settings.TIMEZONE))


def local_today() -> date:
    return local_now().date()
