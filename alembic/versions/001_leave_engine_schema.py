"""001 – Leave engine schema: employees, customers, leaves, ledger, audit.

Revision ID: 001_leave_engine_schema
Revises:
Create Date: 2026-09-14 10:30:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_leave_engine_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    (
        "user_role",
        ["super_user", "admin", "hr", "manager", "director", "employee", "customer"],
    ),
    ("leave_approval_status", ["REQUESTED", "PENDING", "APPROVED", "REJECTED"]),
    ("approver_status", ["REQUESTED", "APPROVED", "REJECTED"]),
    ("allocation_status", ["ACTIVE", "INACTIVE"]),
    ("notification_type", ["info", "action_required", "approval", "alert"]),
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
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code        VARCHAR(20)  NOT NULL UNIQUE,
            first_name           VARCHAR(100) NOT NULL,
            last_name            VARCHAR(100) NOT NULL,
            display_name         VARCHAR(255),
            email                VARCHAR(255) NOT NULL UNIQUE,
            role                 user_role DEFAULT 'employee',
            reporting_manager_id UUID REFERENCES employees(id),
            date_of_joining      DATE NOT NULL,
            is_active            BOOLEAN DEFAULT TRUE,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX idx_employees_manager ON employees(reporting_manager_id)"
    )

    # ── 2. customers ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE customers (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(150) NOT NULL,
            email       VARCHAR(255) NOT NULL UNIQUE,
            is_active   BOOLEAN DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 3. project_resource_allocations ───────────────────────────────────
    op.execute("""
        CREATE TABLE project_resource_allocations (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            customer_id       UUID NOT NULL REFERENCES customers(id),
            status            allocation_status DEFAULT 'ACTIVE',
            customer_approver BOOLEAN DEFAULT FALSE,
            created_at        TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX ix_resource_allocation_employee_status
            ON project_resource_allocations(employee_id, status)
    """)

    # ── 4. employee_leaves ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_leaves (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            request_number  INTEGER NOT NULL UNIQUE,
            employee_id     UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            leave_type      VARCHAR(50) NOT NULL,
            reason          VARCHAR(200),
            start_date      DATE NOT NULL,
            end_date        DATE NOT NULL,
            leave_days      NUMERIC(5,2) NOT NULL,
            is_half_day     BOOLEAN DEFAULT FALSE,
            requested_date  TIMESTAMPTZ DEFAULT NOW(),
            status          leave_approval_status NOT NULL DEFAULT 'REQUESTED',
            version         INTEGER NOT NULL DEFAULT 1,
            created_by      UUID NOT NULL,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_by      UUID NOT NULL,
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CHECK (end_date >= start_date),
            CHECK (NOT is_half_day OR start_date = end_date)
        )
    """)
    op.execute("""
        CREATE INDEX ix_employee_leaves_employee_dates
            ON employee_leaves(employee_id, start_date, end_date)
    """)
    op.execute("CREATE INDEX ix_employee_leaves_status ON employee_leaves(status)")

    # ── 5. employee_leave_approvers ───────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_leave_approvers (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            leave_id        UUID NOT NULL REFERENCES employee_leaves(id) ON DELETE CASCADE,
            position        SMALLINT NOT NULL DEFAULT 0,
            approver_id     UUID NOT NULL,
            approver_role   user_role NOT NULL,
            approver_detail VARCHAR(300),
            approval_status approver_status NOT NULL DEFAULT 'REQUESTED',
            comment         VARCHAR(500),
            decided_at      TIMESTAMPTZ,
            CONSTRAINT uq_leave_approver UNIQUE (leave_id, approver_id)
        )
    """)
    op.execute("""
        CREATE INDEX ix_leave_approvers_approver
            ON employee_leave_approvers(approver_id)
    """)

    # ── 6. employee_leave_allocations ─────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_leave_allocations (
            id                     UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id            UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            leave_type             VARCHAR(60) NOT NULL,
            year                   INTEGER NOT NULL,
            leaves_allocated       NUMERIC(6,2) DEFAULT 0,
            leaves_carry_forwarded NUMERIC(6,2) DEFAULT 0,
            leaves_applied         NUMERIC(6,2) DEFAULT 0,
            created_by             UUID,
            created_at             TIMESTAMPTZ DEFAULT NOW(),
            updated_by             UUID,
            updated_at             TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_leave_allocation UNIQUE (employee_id, year, leave_type)
        )
    """)

    # ── 7. notifications ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            recipient_id    UUID NOT NULL,
            recipient_email VARCHAR(255),
            type            notification_type DEFAULT 'info',
            template        VARCHAR(50) NOT NULL,
            title           VARCHAR(200) NOT NULL,
            message         TEXT NOT NULL,
            action_url      VARCHAR(500),
            entity_type     VARCHAR(50),
            entity_id       UUID,
            is_read         BOOLEAN DEFAULT FALSE,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX ix_notifications_recipient
            ON notifications(recipient_id, is_read)
    """)

    # ── 8. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID,
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute(
        "CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)"
    )
    op.execute("CREATE INDEX ix_audit_trail_action ON audit_trail(action)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notifications",
        "employee_leave_allocations",
        "employee_leave_approvers",
        "employee_leaves",
        "project_resource_allocations",
        "customers",
        "employees",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
