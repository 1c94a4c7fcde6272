"""Role capability queries for the leave engine.

Every leave operation asks these questions instead of comparing role
strings inline.
"""

from __future__ import annotations

from backoffice.common.constants import UserRole

_APPROVER_ROLES = frozenset({
    UserRole.manager,
    UserRole.director,
    UserRole.hr,
    UserRole.super_user,
    UserRole.customer,
})

_OVERRIDE_ROLES = frozenset({UserRole.hr, UserRole.super_user})

_SELF_ONLY_ROLES = frozenset({UserRole.employee, UserRole.customer})

_REPORTEE_VIEWER_ROLES = frozenset({
    UserRole.manager,
    UserRole.director,
    UserRole.hr,
    UserRole.super_user,
})


def can_approve(role: UserRole) -> bool:
    """Role may act on a leave request at all."""
    return role in _APPROVER_ROLES


def can_override(role: UserRole) -> bool:
    """Role may act without being a listed approver, and its approval is final."""
    return role in _OVERRIDE_ROLES


def can_bypass_terminal_lock(role: UserRole) -> bool:
    return role == UserRole.super_user


def can_view_others(role: UserRole) -> bool:
    """Role may read another employee's leaves, balance and allocation."""
    return role not in _SELF_ONLY_ROLES


def can_manage_allocations(role: UserRole) -> bool:
    return role in _OVERRIDE_ROLES


def can_view_reportees(role: UserRole) -> bool:
    return role in _REPORTEE_VIEWER_ROLES


def sees_all_reportees(role: UserRole) -> bool:
    """Reportee listing spans the whole organisation rather than own approvals."""
    return role in _OVERRIDE_ROLES
