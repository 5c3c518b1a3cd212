"""Accrual run log."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from leave_ledger.common.constants import AccrualRunStatus, AccrualRunType
from leave_ledger.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccrualRun(Base):
    """One executed accrual batch; at most one per calendar month."""

    __tablename__ = "accrual_runs"
    __table_args__ = (
        sa.UniqueConstraint("run_month", name="uq_accrual_run_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    run_month: Mapped[date] = mapped_column(sa.Date, nullable=False)
    as_of: Mapped[date] = mapped_column(sa.Date, nullable=False)
    run_type: Mapped[AccrualRunType] = mapped_column(
        sa.Enum(AccrualRunType, name="accrual_run_type"), nullable=False
    )
    status: Mapped[AccrualRunStatus] = mapped_column(
        sa.Enum(AccrualRunStatus, name="accrual_run_status"), nullable=False
    )
    employees_processed: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    total_credited: Mapped[Decimal] = mapped_column(sa.Numeric(10, 2), nullable=False)
    failures: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    triggered_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    executed_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now()
    )
