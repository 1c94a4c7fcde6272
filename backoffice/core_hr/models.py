"""Core HR ORM models: Employee, Customer, ResourceAllocation.

These are the collaborator records the leave engine reads: who an employee
reports to, when they joined, and which customer (if any) they are
allocated to. SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.common.constants import AllocationStatus, UserRole
from backoffice.database import Base

if TYPE_CHECKING:
    from backoffice.leave.models import LeaveAllocation, LeaveRequest


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Core employee record."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_code: Mapped[str] = mapped_column(
        sa.String(20), unique=True, nullable=False,
    )

    # ── Name / Contact ──────────────────────────────────────────────
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(sa.String(255))
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )

    # ── Org hierarchy ───────────────────────────────────────────────
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role", create_type=False),
        default=UserRole.employee,
        server_default=UserRole.employee.value,
    )
    reporting_manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"),
    )

    # ── Employment lifecycle ────────────────────────────────────────
    date_of_joining: Mapped[date] = mapped_column(sa.Date, nullable=False)

    # ── Status / Timestamps ─────────────────────────────────────────
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )

    # ── Relationships ───────────────────────────────────────────────
    reporting_manager: Mapped[Optional[Employee]] = relationship(
        remote_side=[id], back_populates="direct_reports",
    )
    direct_reports: Mapped[list[Employee]] = relationship(
        back_populates="reporting_manager",
    )
    leave_requests: Mapped[list["LeaveRequest"]] = relationship(
        back_populates="employee",
    )
    leave_allocations: Mapped[list["LeaveAllocation"]] = relationship(
        back_populates="employee",
    )
    resource_allocations: Mapped[list[ResourceAllocation]] = relationship(
        back_populates="employee",
    )

    # ── Helpers ─────────────────────────────────────────────────────

    @property
    def full_name(self) -> str:
        return self.display_name or f"{self.first_name} {self.last_name}".strip()

    def ensure_display_name(self) -> None:
        """Set display_name if not explicitly provided."""
        if not self.display_name:
            self.display_name = f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code} {self.full_name}>"


# ═════════════════════════════════════════════════════════════════════
# Customer
# ═════════════════════════════════════════════════════════════════════


class Customer(Base):
    """External client whose contact may approve leave of allocated staff."""

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )

    allocations: Mapped[list[ResourceAllocation]] = relationship(
        back_populates="customer",
    )

    def __repr__(self) -> str:
        return f"<Customer {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Resource allocation
# ═════════════════════════════════════════════════════════════════════


class ResourceAllocation(Base):
    """Placement of an employee on a customer engagement."""

    __tablename__ = "project_resource_allocations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False,
    )
    status: Mapped[AllocationStatus] = mapped_column(
        sa.Enum(
            AllocationStatus,
            name="allocation_status",
            create_type=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=AllocationStatus.active,
    )
    customer_approver: Mapped[bool] = mapped_column(
        sa.Boolean, default=False, server_default=sa.text("FALSE"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(),
    )

    employee: Mapped[Employee] = relationship(back_populates="resource_allocations")
    customer: Mapped[Customer] = relationship(back_populates="allocations")

    __table_args__ = (
        sa.Index("ix_resource_allocation_employee_status", "employee_id", "status"),
    )
