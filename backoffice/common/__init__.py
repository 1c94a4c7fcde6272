"""Common module — shared utilities for the back office."""

from backoffice.common.audit import AuditTrail, create_audit_entry
from backoffice.common.constants import (
    COMBINED_CASUAL_PRIVILEGED,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ORG_LEAVE_POLICY,
    UNLIMITED_BALANCE_SENTINEL,
    AllocationStatus,
    ApprovalStatus,
    LeaveDecision,
    LeaveStatus,
    LeaveType,
    NotificationType,
    UserRole,
)
from backoffice.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    InternalError,
    ValidationException,
    register_exception_handlers,
)
from backoffice.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AllocationStatus",
    "ApprovalStatus",
    "LeaveDecision",
    "LeaveStatus",
    "LeaveType",
    "NotificationType",
    "UserRole",
    "COMBINED_CASUAL_PRIVILEGED",
    "ORG_LEAVE_POLICY",
    "UNLIMITED_BALANCE_SENTINEL",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "InternalError",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
