"""Notification service — record creation and leave workflow dispatchers."""

from __future__ import annotations

import logging
import uuid
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.constants import LeaveStatus, NotificationType
from backoffice.notifications.models import Notification

logger = logging.getLogger(__name__)


# ── Core service ────────────────────────────────────────────────────


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        template: str,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        recipient_email: Optional[str] = None,
        action_url: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        """Create a new notification and flush to DB."""
        notification = Notification(
            recipient_id=recipient_id,
            recipient_email=recipient_email,
            template=template,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def send_best_effort(
        db: AsyncSession,
        send: Callable[[], Awaitable[object]],
        *,
        description: str,
    ) -> bool:
        """Run *send* inside a savepoint, logging and discarding any failure.

        The surrounding transaction is left untouched when delivery fails.
        """
        try:
            async with db.begin_nested():
                await send()
        except Exception:
            logger.exception("Notification failed: %s", description)
            return False
        return True


# ── Leave workflow dispatchers ──────────────────────────────────────
# Accept the ORM object directly to avoid coupling to leave schemas.


def _leave_summary(leave_request) -> str:
    return (
        f"{leave_request.leave_type} from {leave_request.start_date} to "
        f"{leave_request.end_date} ({leave_request.leave_days} day(s))"
    )


async def notify_leave_request(
    db: AsyncSession,
    leave_request,  # backoffice.leave.models.LeaveRequest
    approver,  # backoffice.leave.models.LeaveApprover
    *,
    employee_name: str,
    recipient_email: Optional[str] = None,
) -> Notification:
    """Notify an approver that a new leave request needs review."""
    return await NotificationService.create_notification(
        db,
        recipient_id=approver.approver_id,
        recipient_email=recipient_email,
        template="leave_request_approver",
        type=NotificationType.action_required,
        title=f"Leave Request #{leave_request.request_number}",
        message=(
            f"{employee_name} has requested {_leave_summary(leave_request)}. "
            f"Reason: {leave_request.reason}"
        ),
        action_url=f"/leave/requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_leave_submitted(
    db: AsyncSession,
    leave_request,  # backoffice.leave.models.LeaveRequest
    *,
    recipient_email: Optional[str] = None,
) -> Notification:
    """Confirm to the employee that their leave request was submitted."""
    approvers = ", ".join(
        approver.approver_detail or str(approver.approver_id)
        for approver in leave_request.approvers.values()
    )
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.employee_id,
        recipient_email=recipient_email,
        template="leave_request_employee",
        type=NotificationType.info,
        title=f"Leave Request #{leave_request.request_number} Submitted",
        message=(
            f"Your request for {_leave_summary(leave_request)} was sent to "
            f"{approvers} for approval."
        ),
        action_url=f"/leave/requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_leave_decided(
    db: AsyncSession,
    leave_request,  # backoffice.leave.models.LeaveRequest
    *,
    decided_by: str,
    comment: Optional[str] = None,
    recipient_email: Optional[str] = None,
) -> Notification:
    """Tell the employee their request moved to a new status."""
    status = leave_request.status
    if status is LeaveStatus.approved:
        type_, template = NotificationType.approval, "leave_approved"
    elif status is LeaveStatus.rejected:
        type_, template = NotificationType.alert, "leave_rejected"
    else:
        type_, template = NotificationType.info, "leave_pending"

    message = (
        f"Your request for {_leave_summary(leave_request)} is now "
        f"{status.value.lower()} (updated by {decided_by})."
    )
    if comment:
        message += f" Comment: {comment}"

    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.employee_id,
        recipient_email=recipient_email,
        template=template,
        type=type_,
        title=f"Leave Request #{leave_request.request_number} {status.value.title()}",
        message=message,
        action_url=f"/leave/requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )
