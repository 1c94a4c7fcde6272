"""Enums and constants for the back office — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum
from decimal import Decimal


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    super_user = "super_user"
    admin = "admin"
    hr = "hr"
    manager = "manager"
    director = "director"
    employee = "employee"
    customer = "customer"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    """Overall status of a leave request."""

    requested = "REQUESTED"
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"


class ApprovalStatus(str, enum.Enum):
    """Status of a single approver's decision."""

    requested = "REQUESTED"
    approved = "APPROVED"
    rejected = "REJECTED"


class LeaveDecision(str, enum.Enum):
    approved = "APPROVED"
    rejected = "REJECTED"


class LeaveType(str, enum.Enum):
    sick = "Sick Leave"
    casual = "Casual Leave"
    privileged = "Privileged Leave"
    personal_emergency = "Personal Emergency"
    maternity = "Maternity Leave"
    paternity = "Paternity Leave"
    bereavement = "Bereavement Leave"
    marriage = "Marriage Leave"
    loss_of_pay = "Loss of Pay"
    work_from_home = "Work From Home"
    compensatory_off = "Compensatory Off"


TERMINAL_LEAVE_STATUSES = frozenset({LeaveStatus.approved, LeaveStatus.rejected})

# Casual and Privileged leave share one tracked balance
COMBINED_CASUAL_PRIVILEGED = f"{LeaveType.casual.value}_{LeaveType.privileged.value}"

# Ordered org policy: (leave type, days allocated per year)
ORG_LEAVE_POLICY: tuple[tuple[str, Decimal], ...] = (
    (LeaveType.sick.value, Decimal("8")),
    (COMBINED_CASUAL_PRIVILEGED, Decimal("14")),
    (LeaveType.personal_emergency.value, Decimal("2")),
)

# Reported balance for leave types outside ORG_LEAVE_POLICY
UNLIMITED_BALANCE_SENTINEL = 999

REQUEST_NUMBER_MIN = 100000
REQUEST_NUMBER_MAX = 999999


# ── Customer allocations ────────────────────────────────────────────

class AllocationStatus(str, enum.Enum):
    active = "ACTIVE"
    inactive = "INACTIVE"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    alert = "alert"


# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
