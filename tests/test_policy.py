"""Role capability queries."""

from __future__ import annotations

import pytest

from backoffice.auth import policy
from backoffice.common.constants import UserRole


@pytest.mark.parametrize(
    "role, expected",
    [
        (UserRole.super_user, True),
        (UserRole.hr, True),
        (UserRole.manager, True),
        (UserRole.director, True),
        (UserRole.customer, True),
        (UserRole.employee, False),
        (UserRole.admin, False),
    ],
)
def test_can_approve(role, expected):
    assert policy.can_approve(role) is expected


@pytest.mark.parametrize("role", list(UserRole))
def test_override_and_allocation_management_are_hr_and_super_user_only(role):
    expected = role in (UserRole.hr, UserRole.super_user)
    assert policy.can_override(role) is expected
    assert policy.can_manage_allocations(role) is expected
    assert policy.sees_all_reportees(role) is expected


def test_only_super_user_bypasses_terminal_lock():
    assert [r for r in UserRole if policy.can_bypass_terminal_lock(r)] == [UserRole.super_user]


@pytest.mark.parametrize("role", [UserRole.employee, UserRole.customer])
def test_self_only_roles_cannot_view_others(role):
    assert policy.can_view_others(role) is False


@pytest.mark.parametrize(
    "role", [UserRole.super_user, UserRole.admin, UserRole.hr, UserRole.manager, UserRole.director],
)
def test_staff_roles_can_view_others(role):
    assert policy.can_view_others(role) is True


def test_reportee_viewers():
    viewers = {r for r in UserRole if policy.can_view_reportees(r)}
    assert viewers == {UserRole.manager, UserRole.director, UserRole.hr, UserRole.super_user}
