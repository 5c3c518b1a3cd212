"""001 – Initial schema: employees, LOP history, leave requests, holidays,
accrual runs, audit trail, app settings.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["employee", "manager", "admin"]),
    ("employment_type", ["regular", "intern"]),
    (
        "leave_type",
        ["sick", "casual", "vacation", "compOff", "lop", "wfh", "academic"],
    ),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("holiday_type", ["national", "regional", "optional"]),
    ("accrual_run_type", ["monthly", "carry_forward"]),
    ("accrual_run_status", ["completed", "completed_with_failures"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name                VARCHAR(200) NOT NULL,
            email               VARCHAR(255) NOT NULL UNIQUE,
            role                user_role NOT NULL DEFAULT 'employee',
            employment_type     employment_type NOT NULL DEFAULT 'regular',
            joining_date        DATE NOT NULL,
            department          VARCHAR(100),
            manager_id          UUID REFERENCES employees(id),
            sick_balance        NUMERIC(6,2) NOT NULL DEFAULT 0 CHECK (sick_balance >= 0),
            casual_balance      NUMERIC(6,2) NOT NULL DEFAULT 0 CHECK (casual_balance >= 0),
            vacation_balance    NUMERIC(6,2) NOT NULL DEFAULT 0 CHECK (vacation_balance >= 0),
            academic_balance    NUMERIC(6,2) NOT NULL DEFAULT 0 CHECK (academic_balance >= 0),
            comp_off_balance    NUMERIC(6,2) NOT NULL DEFAULT 0 CHECK (comp_off_balance >= 0),
            lop_balance         NUMERIC(6,2) NOT NULL DEFAULT 0 CHECK (lop_balance >= 0),
            carry_forward_days  NUMERIC(6,2) NOT NULL DEFAULT 0,
            yearly_lop          NUMERIC(6,2) NOT NULL DEFAULT 0,
            monthly_lop         NUMERIC(6,2) NOT NULL DEFAULT 0,
            lop_last_reset_date DATE,
            is_active           BOOLEAN NOT NULL DEFAULT TRUE,
            version             INTEGER NOT NULL,
            created_at          TIMESTAMPTZ DEFAULT NOW(),
            updated_at          TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. lop_history ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE lop_history (
            id               SERIAL PRIMARY KEY,
            employee_id      UUID NOT NULL REFERENCES employees(id),
            entry_date       DATE NOT NULL,
            days             NUMERIC(6,2) NOT NULL,
            reason           TEXT NOT NULL,
            leave_request_id UUID
        )
    """)
    op.execute("CREATE INDEX ix_lop_history_employee_id ON lop_history(employee_id)")

    # ── 3. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id         UUID NOT NULL REFERENCES employees(id),
            leave_type          leave_type NOT NULL,
            start_date          DATE NOT NULL,
            end_date            DATE NOT NULL,
            is_half_day         BOOLEAN NOT NULL DEFAULT FALSE,
            reason              TEXT NOT NULL,
            status              leave_status NOT NULL DEFAULT 'pending',
            working_days        NUMERIC(6,2) NOT NULL DEFAULT 0,
            lop_days_attributed NUMERIC(6,2) NOT NULL DEFAULT 0,
            balance_deducted    BOOLEAN NOT NULL DEFAULT FALSE,
            documents           JSONB NOT NULL DEFAULT '[]'::jsonb,
            comp_off_days       NUMERIC(6,2),
            approved_by         UUID,
            approved_on         TIMESTAMPTZ,
            rejected_by         UUID,
            rejected_on         TIMESTAMPTZ,
            rejection_reason    TEXT,
            cancelled_by        UUID,
            cancelled_on        TIMESTAMPTZ,
            cancellation_reason TEXT,
            created_at          TIMESTAMPTZ DEFAULT NOW(),
            updated_at          TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_dates CHECK (end_date >= start_date),
            CONSTRAINT ck_leave_working_days CHECK (working_days >= 0),
            CONSTRAINT ck_leave_lop_days CHECK (lop_days_attributed >= 0)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_employee_status "
        "ON leave_requests(employee_id, status)"
    )

    # ── 4. holidays ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE holidays (
            id         UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            date       DATE NOT NULL,
            name       VARCHAR(200) NOT NULL,
            year       INTEGER NOT NULL,
            type       holiday_type NOT NULL DEFAULT 'national',
            is_active  BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_holiday_date UNIQUE (date)
        )
    """)
    op.execute("CREATE INDEX ix_holidays_year ON holidays(year)")

    # ── 5. accrual_runs ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE accrual_runs (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            run_month           DATE NOT NULL,
            as_of               DATE NOT NULL,
            run_type            accrual_run_type NOT NULL,
            status              accrual_run_status NOT NULL,
            employees_processed INTEGER NOT NULL,
            total_credited      NUMERIC(10,2) NOT NULL,
            failures            JSONB NOT NULL DEFAULT '[]'::jsonb,
            triggered_by        UUID,
            executed_at         TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_accrual_run_month UNIQUE (run_month)
        )
    """)

    # ── 6. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID,
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")

    # ── 7. app_settings ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE app_settings (
            key         VARCHAR(100) PRIMARY KEY,
            value       JSONB NOT NULL,
            description TEXT,
            updated_at  TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            updated_by  UUID
        )
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    tables = [
        "app_settings",
        "audit_trail",
        "accrual_runs",
        "holidays",
        "leave_requests",
        "lop_history",
        "employees",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
