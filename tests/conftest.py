"""Fixtures for the leave engine tests.

Runs against in-memory SQLite via aiosqlite; Postgres-only column types are
compiled to plain SQLite types below.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from backoffice.auth.dependencies import Actor
from backoffice.common.constants import AllocationStatus, LeaveStatus, UserRole
from backoffice.config import settings
import backoffice.database
from backoffice.database import Base
from backoffice.main import create_app

# Every mapped table must be registered before create_all
import backoffice.common.audit  # noqa: F401
import backoffice.core_hr.models  # noqa: F401
import backoffice.leave.models  # noqa: F401
import backoffice.notifications.models  # noqa: F401

from backoffice.core_hr.models import Customer, Employee, ResourceAllocation
from backoffice.leave.models import LeaveAllocation, LeaveApprover, LeaveRequest

# ── SQLite compat: compile PG-specific types to TEXT/CHAR ───────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Engine ──────────────────────────────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """server_default=NOW() needs a SQLite implementation."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _schema():
    """Fresh leave-engine schema per test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ── App + HTTP client ───────────────────────────────────────────────

@pytest.fixture
async def app(monkeypatch):
    # get_db keeps its commit/rollback behaviour, only the factory is swapped
    monkeypatch.setattr(backoffice.database, "async_session_factory", TestSessionFactory)
    yield create_app()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


# ── Direct session for seeding and assertions ───────────────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_employee(
    *,
    email: Optional[str] = None,
    first_name: str = "Test",
    last_name: str = "User",
    role: UserRole = UserRole.employee,
    reporting_manager_id: Optional[uuid.UUID] = None,
    date_of_joining: date = date(2024, 1, 15),
    is_active: bool = True,
) -> dict:
    code = uuid.uuid4().hex[:6].upper()
    return dict(
        id=uuid.uuid4(),
        employee_code=f"BO-{code}",
        first_name=first_name,
        last_name=last_name,
        email=email or f"{first_name.lower()}.{code.lower()}@backoffice.local",
        role=role,
        reporting_manager_id=reporting_manager_id,
        date_of_joining=date_of_joining,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


async def seed_employee(db: AsyncSession, **kwargs) -> Employee:
    employee = Employee(**_make_employee(**kwargs))
    db.add(employee)
    await db.flush()
    return employee


async def seed_customer(
    db: AsyncSession,
    employee: Employee,
    *,
    name: str = "Acme Corp",
    customer_approver: bool = True,
    status: AllocationStatus = AllocationStatus.active,
) -> Customer:
    """Insert a customer and allocate *employee* to it."""
    customer = Customer(
        id=uuid.uuid4(),
        name=name,
        email=f"leave-{uuid.uuid4().hex[:6]}@acme.example",
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db.add(customer)
    await db.flush()
    db.add(
        ResourceAllocation(
            id=uuid.uuid4(),
            employee_id=employee.id,
            customer_id=customer.id,
            status=status,
            customer_approver=customer_approver,
            created_at=datetime.now(timezone.utc),
        )
    )
    await db.flush()
    return customer


async def seed_leave(
    db: AsyncSession,
    employee: Employee,
    *,
    approvers: tuple[Employee, ...] = (),
    leave_type: str = "Sick Leave",
    start_date: date = date(2026, 3, 2),
    end_date: date = date(2026, 3, 3),
    is_half_day: bool = False,
    status: LeaveStatus = LeaveStatus.requested,
    created_at: Optional[datetime] = None,
    request_number: Optional[int] = None,
) -> LeaveRequest:
    """Insert a leave request directly, bypassing the apply flow."""
    days = Decimal("0.5") if is_half_day else Decimal((end_date - start_date).days + 1)
    created_at = created_at or datetime.now(timezone.utc)
    leave = LeaveRequest(
        id=uuid.uuid4(),
        request_number=request_number or 100000 + uuid.uuid4().int % 900000,
        employee_id=employee.id,
        leave_type=leave_type,
        reason="Seeded leave",
        start_date=start_date,
        end_date=end_date,
        leave_days=days,
        is_half_day=is_half_day,
        requested_date=created_at,
        status=status,
        created_by=employee.id,
        updated_by=employee.id,
        created_at=created_at,
        updated_at=created_at,
    )
    for approver in approvers:
        leave.add_approver(
            LeaveApprover(
                approver_id=approver.id,
                approver_role=approver.role,
                approver_detail=f"{approver.full_name} <{approver.email}>",
            )
        )
    db.add(leave)
    await db.flush()
    return leave


async def seed_allocation(
    db: AsyncSession,
    employee: Employee,
    *,
    leave_type: str,
    year: int = 2026,
    allocated: str = "0",
    carry_forwarded: str = "0",
    applied: str = "0",
) -> LeaveAllocation:
    row = LeaveAllocation(
        id=uuid.uuid4(),
        employee_id=employee.id,
        leave_type=leave_type,
        year=year,
        leaves_allocated=Decimal(allocated),
        leaves_carry_forwarded=Decimal(carry_forwarded),
        leaves_applied=Decimal(applied),
    )
    db.add(row)
    await db.flush()
    return row


def actor_for(principal, role: Optional[UserRole] = None) -> Actor:
    """Build the Actor the auth dependency would produce for *principal*."""
    return Actor(
        id=principal.id,
        role=role or getattr(principal, "role", UserRole.customer),
        email=principal.email,
    )


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    subject_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(subject_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers_for(subject_id: uuid.UUID, role: UserRole = UserRole.employee) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject_id, role)}"}
