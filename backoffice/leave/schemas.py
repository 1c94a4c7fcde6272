"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Request        → request bodies (write)
  - *Response / *Out → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backoffice.common.constants import (
    UNLIMITED_BALANCE_SENTINEL,
    ApprovalStatus,
    LeaveDecision,
    LeaveStatus,
    UserRole,
)
from backoffice.leave.balance import Balance, Bounded, LeaveBalanceEntry


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    display_name: Optional[str] = None
    email: str


class MessageResponse(BaseModel):
    message: str


def _balance_fields(balance: Balance) -> dict:
    if isinstance(balance, Bounded):
        return {"leave_balance": balance.days, "is_unlimited": False}
    return {"leave_balance": Decimal(UNLIMITED_BALANCE_SENTINEL), "is_unlimited": True}


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Apply
# ═════════════════════════════════════════════════════════════════════


class LeaveApplyRequest(BaseModel):
    """Payload for applying a leave request."""

    employee_id: uuid.UUID
    leave_type: str = Field(..., min_length=2, max_length=50)
    reason: str = Field(..., min_length=3, max_length=200)
    leave_start_date: date = Field(..., description="Leave start date (inclusive)")
    leave_end_date: date = Field(..., description="Leave end date (inclusive)")
    is_half_day: bool = False
    secondary_approver_id: Optional[uuid.UUID] = None

    @field_validator("leave_type", "reason")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be blank.")
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveApplyRequest":
        if self.leave_end_date < self.leave_start_date:
            raise ValueError("End date must be on or after start date.")
        if self.is_half_day and self.leave_start_date != self.leave_end_date:
            raise ValueError("Half-day leave must span a single day.")
        return self


class LeaveApplyResponse(BaseModel):
    leave_id: uuid.UUID
    request_number: int


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Status update
# ═════════════════════════════════════════════════════════════════════


class LeaveStatusUpdateRequest(BaseModel):
    """An approver's decision on a leave request."""

    approval_status: LeaveDecision
    comment: Optional[str] = Field(None, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Response
# ═════════════════════════════════════════════════════════════════════


class LeaveApproverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    approver_id: uuid.UUID
    approver_role: UserRole
    approver_detail: Optional[str] = None
    approval_status: ApprovalStatus
    comment: Optional[str] = None
    decided_at: Optional[datetime] = None


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    request_number: int
    employee_id: uuid.UUID
    leave_type: str
    reason: Optional[str] = None
    start_date: date
    end_date: date
    leave_days: Decimal
    is_half_day: bool
    requested_date: datetime
    status: LeaveStatus
    approvers: list[LeaveApproverOut] = []
    created_at: datetime
    updated_at: datetime

    employee: Optional[EmployeeBrief] = None

    @field_validator("approvers", mode="before")
    @classmethod
    def approvers_in_order(cls, v):
        # ORM collection is keyed by approver id
        if isinstance(v, dict):
            return list(v.values())
        return v


class LeaveFilters(BaseModel):
    """Listing filters; ``year`` matches requests starting or ending in it."""

    year: Optional[int] = Field(None, ge=1900, le=9999)
    leave_type: Optional[str] = None
    status: Optional[LeaveStatus] = None


# ═════════════════════════════════════════════════════════════════════
# Balance / Allocation
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    """Balance for one leave type; unlimited types report the sentinel."""

    leave_type: str
    leave_balance: Decimal
    is_unlimited: bool = False
    leaves_applied: Decimal

    @classmethod
    def from_entry(cls, entry: LeaveBalanceEntry) -> "LeaveBalanceOut":
        return cls(
            leave_type=entry.leave_type,
            leaves_applied=entry.leaves_applied,
            **_balance_fields(entry.balance),
        )


class LeaveAllocationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: str
    year: int
    leaves_allocated: Decimal
    leaves_carry_forwarded: Decimal
    leaves_applied: Decimal
    leave_balance: Decimal
    is_unlimited: bool = False

    @classmethod
    def from_row(cls, row, balance: Balance) -> "LeaveAllocationOut":
        return cls(
            id=row.id,
            employee_id=row.employee_id,
            leave_type=row.leave_type,
            year=row.year,
            leaves_allocated=row.leaves_allocated,
            leaves_carry_forwarded=row.leaves_carry_forwarded,
            leaves_applied=row.leaves_applied,
            **_balance_fields(balance),
        )


class LeaveAllocationUpdateItem(BaseModel):
    id: uuid.UUID
    leaves_allocated: Decimal = Field(..., ge=0, le=365)
    leaves_carry_forwarded: Decimal = Field(..., ge=0, le=365)


class LeaveAllocationUpdateRequest(BaseModel):
    """HR bulk edit of ledger rows."""

    allocations: list[LeaveAllocationUpdateItem] = Field(..., min_length=1)

    @field_validator("allocations")
    @classmethod
    def unique_ids(cls, v: list[LeaveAllocationUpdateItem]) -> list[LeaveAllocationUpdateItem]:
        ids = [item.id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Each allocation may appear only once.")
        return v


class LeaveAllocationUpdateResponse(MessageResponse):
    count: int
