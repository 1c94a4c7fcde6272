"""Leave ORM models: LeaveRequest, LeaveApprover, LeaveAllocation."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, attribute_keyed_dict, mapped_column, relationship

from backoffice.common.constants import ApprovalStatus, LeaveStatus, UserRole
from backoffice.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class LeaveRequest(Base):
    __tablename__ = "employee_leaves"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    request_number: Mapped[int] = mapped_column(
        sa.Integer, unique=True, nullable=False
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.String(200))
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    leave_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), nullable=False)
    is_half_day: Mapped[bool] = mapped_column(
        sa.Boolean, default=False, server_default=sa.text("FALSE")
    )
    requested_date: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now()
    )
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(
            LeaveStatus,
            name="leave_approval_status",
            create_type=False,
            values_callable=_enum_values,
        ),
        default=LeaveStatus.requested,
        nullable=False,
    )
    version: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)

    # Actor ids may be customers, so no FK to employees
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now()
    )
    updated_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=_utcnow,
        server_default=sa.func.now(),
        onupdate=_utcnow,
    )

    # Relationships
    employee: Mapped["backoffice.core_hr.models.Employee"] = relationship(
        back_populates="leave_requests", lazy="selectin"
    )
    # Keyed by approver_id; iteration follows position (insertion order)
    approvers: Mapped[dict[uuid.UUID, LeaveApprover]] = relationship(
        back_populates="leave",
        collection_class=attribute_keyed_dict("approver_id"),
        order_by="LeaveApprover.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        sa.Index("ix_employee_leaves_employee_dates", "employee_id", "start_date", "end_date"),
        sa.Index("ix_employee_leaves_status", "status"),
    )

    def add_approver(self, approver: LeaveApprover) -> LeaveApprover:
        """Append an approver at the end of the chain."""
        approver.position = len(self.approvers)
        self.approvers[approver.approver_id] = approver
        return approver

    def __repr__(self) -> str:
        return f"<LeaveRequest #{self.request_number} {self.leave_type} {self.status.value}>"


class LeaveApprover(Base):
    __tablename__ = "employee_leave_approvers"
    __table_args__ = (
        sa.UniqueConstraint("leave_id", "approver_id", name="uq_leave_approver"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    leave_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employee_leaves.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False, default=0)
    approver_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    approver_role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role", create_type=False), nullable=False
    )
    approver_detail: Mapped[Optional[str]] = mapped_column(sa.String(300))
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        sa.Enum(
            ApprovalStatus,
            name="approver_status",
            create_type=False,
            values_callable=_enum_values,
        ),
        default=ApprovalStatus.requested,
        nullable=False,
    )
    comment: Mapped[Optional[str]] = mapped_column(sa.String(500))
    decided_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    leave: Mapped[LeaveRequest] = relationship(back_populates="approvers")

    def __repr__(self) -> str:
        return (
            f"<LeaveApprover {self.approver_role.value} {self.approver_id} "
            f"{self.approval_status.value}>"
        )


class LeaveAllocation(Base):
    __tablename__ = "employee_leave_allocations"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_id", "year", "leave_type", name="uq_leave_allocation"
        ),
    )

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
    leave_type: Mapped[str] = mapped_column(sa.String(60), nullable=False)
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    leaves_allocated: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=sa.text("0")
    )
    leaves_carry_forwarded: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=sa.text("0")
    )
    leaves_applied: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), default=Decimal("0"), server_default=sa.text("0")
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now()
    )
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=_utcnow,
        server_default=sa.func.now(),
        onupdate=_utcnow,
    )

    # Relationships
    employee: Mapped["backoffice.core_hr.models.Employee"] = relationship(
        back_populates="leave_allocations"
    )

    @property
    def leaves_balance(self) -> Decimal:
        """Derived, never stored."""
        return (
            Decimal(self.leaves_allocated or 0)
            + Decimal(self.leaves_carry_forwarded or 0)
            - Decimal(self.leaves_applied or 0)
        )

    def __repr__(self) -> str:
        return f"<LeaveAllocation {self.employee_id} {self.year} {self.leave_type!r}>"
