"""Leave request approval state machine.

A request starts REQUESTED and moves to PENDING, APPROVED or REJECTED as
approvers decide. APPROVED and REJECTED are terminal for everyone except a
super user. The overall status is always recomputed from the approver
entries; nothing sets it directly.

These functions mutate the in-memory aggregate only; persistence, the
ledger and notifications are handled by ``LeaveService``.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional

from backoffice.auth import policy
from backoffice.common.constants import (
    TERMINAL_LEAVE_STATUSES,
    ApprovalStatus,
    LeaveDecision,
    LeaveStatus,
    UserRole,
)
from backoffice.common.exceptions import ForbiddenException, ValidationException
from backoffice.leave.models import LeaveApprover, LeaveRequest

if TYPE_CHECKING:
    from backoffice.auth.dependencies import Actor


class LedgerEffect(str, enum.Enum):
    add = "add"
    subtract = "subtract"
    none = "none"


# ── Guards ──────────────────────────────────────────────────────────

def ensure_role_can_approve(actor: Actor) -> None:
    if not policy.can_approve(actor.role):
        raise ForbiddenException(
            "Access denied. You do not have permission to update leave status."
        )


def ensure_not_locked(leave: LeaveRequest, actor: Actor) -> None:
    """Terminal requests may only be changed by a super user."""
    if leave.status in TERMINAL_LEAVE_STATUSES and not policy.can_bypass_terminal_lock(actor.role):
        raise ValidationException(
            {"status": [
                f"Leave is already {leave.status.value.lower()} and cannot be updated again."
            ]}
        )


def ensure_can_act(leave: LeaveRequest, actor: Actor) -> None:
    """Actor must be a listed approver, or hold an override role."""
    if actor.id not in leave.approvers and not policy.can_override(actor.role):
        raise ForbiddenException(
            "Access denied. You are not an approver for this leave request."
        )


# ── Status computation ──────────────────────────────────────────────

def compute_overall_status(
    approver_statuses: Iterable[ApprovalStatus],
    decision: LeaveDecision,
    actor_role: UserRole,
) -> LeaveStatus:
    """Overall status after *decision*; a single rejection is final."""
    if decision is LeaveDecision.rejected:
        return LeaveStatus.rejected
    if all(status is ApprovalStatus.approved for status in approver_statuses):
        return LeaveStatus.approved
    if policy.can_override(actor_role):
        return LeaveStatus.approved
    return LeaveStatus.pending


def ledger_effect(old_status: LeaveStatus, new_status: LeaveStatus) -> LedgerEffect:
    if new_status is LeaveStatus.approved and old_status is not LeaveStatus.approved:
        return LedgerEffect.add
    if new_status is LeaveStatus.rejected and old_status is LeaveStatus.approved:
        return LedgerEffect.subtract
    return LedgerEffect.none


# ── Transition ──────────────────────────────────────────────────────

def apply_decision(
    leave: LeaveRequest,
    actor: Actor,
    decision: LeaveDecision,
    comment: Optional[str],
    now: datetime,
    *,
    actor_detail: Optional[str] = None,
) -> LeaveStatus:
    """Record *actor*'s decision and recompute the overall status.

    Guards are checked first; nothing is mutated if they fail. Returns the
    new overall status, which is also set on *leave*.
    """
    ensure_role_can_approve(actor)
    ensure_not_locked(leave, actor)
    ensure_can_act(leave, actor)

    entry = leave.approvers.get(actor.id)
    if entry is None:
        entry = leave.add_approver(
            LeaveApprover(
                approver_id=actor.id,
                approver_role=actor.role,
                approver_detail=actor_detail or actor.email,
            )
        )
    entry.approval_status = ApprovalStatus(decision.value)
    entry.comment = comment
    entry.decided_at = now

    new_status = compute_overall_status(
        (approver.approval_status for approver in leave.approvers.values()),
        decision,
        actor.role,
    )
    leave.status = new_status
    leave.updated_by = actor.id
    leave.updated_at = now
    return new_status
