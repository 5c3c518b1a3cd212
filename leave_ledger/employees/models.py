"""Employee ORM models: Employee and its LOP history.

Balances live directly on the employee row, one Numeric column per
:class:`~leave_ledger.common.constants.BalanceBucket`. The ``version``
column is SQLAlchemy's ``version_id_col``: every UPDATE is guarded by the
version read, so a concurrent writer in another process surfaces as
``StaleDataError`` instead of a lost update.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_ledger.common.constants import EmploymentType, UserRole
from leave_ledger.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_ZERO = sa.text("0")


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Employee of record with leave balances and LOP counters."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        default=UserRole.employee,
        nullable=False,
    )
    employment_type: Mapped[EmploymentType] = mapped_column(
        sa.Enum(EmploymentType, name="employment_type"),
        default=EmploymentType.regular,
        nullable=False,
    )
    joining_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    department: Mapped[Optional[str]] = mapped_column(sa.String(100))
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )

    # ── Balances ────────────────────────────────────────────────────
    sick_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    casual_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    vacation_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    academic_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    comp_off_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    lop_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    carry_forward_days: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )

    # ── LOP tracking ────────────────────────────────────────────────
    yearly_lop: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    monthly_lop: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=_ZERO, nullable=False
    )
    lop_last_reset_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"), nullable=False
    )
    version: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=sa.func.now(),
    )

    # ── Relationships ───────────────────────────────────────────────
    lop_history: Mapped[list[LOPHistoryEntry]] = relationship(
        back_populates="employee",
        order_by="LOPHistoryEntry.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Employee {self.email!r}>"


# ═════════════════════════════════════════════════════════════════════
# LOP history
# ═════════════════════════════════════════════════════════════════════


class LOPHistoryEntry(Base):
    """One movement of an employee's LOP counters.

    Positive ``days`` record LOP taken on; negative ``days`` record LOP
    released by a cancellation.
    """

    __tablename__ = "lop_history"
    __table_args__ = (sa.Index("ix_lop_history_employee_id", "employee_id"),)

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    entry_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    days: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    leave_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))

    employee: Mapped[Employee] = relationship(back_populates="lop_history")
