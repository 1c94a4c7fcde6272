"""Leave service layer — application, approvals, balances, allocations and listings.

Business logic:
  - Apply: day count, overlap check, approver chain, unique request number
  - Status updates through the approval state machine, with the ledger kept
    in step inside the same transaction
  - Balance and allocation views restricted to self for plain employees
  - HR edits of allocation rows
  - Own and reportee leave listings
"""

from __future__ import annotations

import functools
import logging
import secrets
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from backoffice.auth import policy
from backoffice.auth.dependencies import Actor
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import (
    REQUEST_NUMBER_MAX,
    REQUEST_NUMBER_MIN,
    LeaveStatus,
)
from backoffice.common.exceptions import (
    ConflictError,
    ForbiddenException,
    InternalError,
    ValidationException,
)
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.config import settings
from backoffice.core_hr.models import Employee
from backoffice.core_hr.service import CoreHRService
from backoffice.leave import workflow
from backoffice.leave.allocation import (
    AllocationUpdate,
    apply_allocation_updates,
    get_allocations,
    upsert_leave_allocations,
    visible_allocations,
)
from backoffice.leave.approvers import approver_email, build_approver_chain
from backoffice.leave.balance import calculate_leave_balance, get_applied_leaves
from backoffice.leave.calculations import leave_days
from backoffice.leave.models import LeaveApprover, LeaveRequest
from backoffice.leave.schemas import (
    LeaveAllocationOut,
    LeaveAllocationUpdateRequest,
    LeaveAllocationUpdateResponse,
    LeaveApplyRequest,
    LeaveApplyResponse,
    LeaveBalanceOut,
    LeaveFilters,
    LeaveRequestOut,
    LeaveStatusUpdateRequest,
    MessageResponse,
)
from backoffice.notifications.service import (
    NotificationService,
    notify_leave_decided,
    notify_leave_request,
    notify_leave_submitted,
)

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: apply, decide, balances, allocations, listings."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _ensure_can_view(actor: Actor, employee_id: uuid.UUID) -> None:
        if not policy.can_view_others(actor.role) and actor.id != employee_id:
            raise ForbiddenException(
                "Access denied. You can only view your own leave details."
            )

    @staticmethod
    async def _get_employee_or_raise(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Employee:
        employee = await CoreHRService.get_employee(db, employee_id, for_update=for_update)
        if employee is None:
            raise ValidationException({"employee_id": ["Employee not found."]})
        return employee

    @staticmethod
    async def find_overlapping_leave(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> Optional[LeaveRequest]:
        """Return an open or approved request whose dates intersect the range."""
        result = await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status.in_([LeaveStatus.approved, LeaveStatus.requested]),
                LeaveRequest.start_date <= end_date,
                LeaveRequest.end_date >= start_date,
            )
            .limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def _generate_request_number(db: AsyncSession) -> int:
        """Random six-digit number not yet used by any request."""
        span = REQUEST_NUMBER_MAX - REQUEST_NUMBER_MIN + 1
        for _ in range(settings.LEAVE_REQUEST_NUMBER_ATTEMPTS):
            candidate = REQUEST_NUMBER_MIN + secrets.randbelow(span)
            taken = await db.execute(
                select(LeaveRequest.id).where(LeaveRequest.request_number == candidate)
            )
            if taken.first() is None:
                return candidate

        logger.error(
            "No free leave request number after %d attempts",
            settings.LEAVE_REQUEST_NUMBER_ATTEMPTS,
        )
        raise InternalError()

    @staticmethod
    def _apply_filters(query, filters: LeaveFilters):
        year = filters.year or date.today().year
        year_start, year_end = date(year, 1, 1), date(year, 12, 31)
        query = query.where(
            or_(
                and_(LeaveRequest.start_date >= year_start, LeaveRequest.start_date <= year_end),
                and_(LeaveRequest.end_date >= year_start, LeaveRequest.end_date <= year_end),
            )
        )
        if filters.leave_type:
            query = query.where(LeaveRequest.leave_type == filters.leave_type)
        if filters.status:
            query = query.where(LeaveRequest.status == filters.status)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.request_number.desc())

    # ─────────────────────────────────────────────────────────────────
    # Apply Leave
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def apply_leave(
        db: AsyncSession,
        data: LeaveApplyRequest,
        actor: Actor,
    ) -> LeaveApplyResponse:
        """Create a leave request in REQUESTED with its approver chain.

        The employee row is locked first so that concurrent applications
        for the same employee serialize on the overlap check.
        """
        if not policy.can_view_others(actor.role) and actor.id != data.employee_id:
            raise ForbiddenException("Access denied. You can only apply leave for yourself.")

        employee = await LeaveService._get_employee_or_raise(
            db, data.employee_id, for_update=True,
        )

        days = leave_days(data.leave_start_date, data.leave_end_date, data.is_half_day)

        overlapping = await LeaveService.find_overlapping_leave(
            db, employee.id, data.leave_start_date, data.leave_end_date,
        )
        if overlapping is not None:
            raise ValidationException(
                {"leave_start_date": [
                    "Leave request is overlapping with an existing leave "
                    f"(#{overlapping.request_number})."
                ]}
            )

        chain = await build_approver_chain(db, employee, data.secondary_approver_id)
        request_number = await LeaveService._generate_request_number(db)

        now = datetime.now(timezone.utc)
        leave = LeaveRequest(
            request_number=request_number,
            employee_id=employee.id,
            leave_type=data.leave_type,
            reason=data.reason,
            start_date=data.leave_start_date,
            end_date=data.leave_end_date,
            leave_days=days,
            is_half_day=data.is_half_day,
            requested_date=now,
            status=LeaveStatus.requested,
            created_by=actor.id,
            updated_by=actor.id,
        )
        for approver in chain:
            leave.add_approver(approver)
        db.add(leave)
        await db.flush()

        await create_audit_entry(
            db,
            action="apply",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=actor.id,
            new_values={
                "request_number": request_number,
                "leave_type": leave.leave_type,
                "start_date": leave.start_date.isoformat(),
                "end_date": leave.end_date.isoformat(),
                "leave_days": str(days),
                "approvers": [str(a.approver_id) for a in chain],
            },
        )

        logger.info(
            "Leave #%s applied for employee %s: %s, %s to %s (%s days), %d approver(s)",
            request_number, employee.id, leave.leave_type,
            leave.start_date, leave.end_date, days, len(chain),
        )

        # ── Notify approvers and employee ───────────────────────────
        for approver in chain:
            email = await approver_email(db, approver)
            await NotificationService.send_best_effort(
                db,
                functools.partial(
                    notify_leave_request,
                    db, leave, approver,
                    employee_name=employee.full_name,
                    recipient_email=email,
                ),
                description=f"leave #{request_number} to approver {approver.approver_id}",
            )
        await NotificationService.send_best_effort(
            db,
            functools.partial(
                notify_leave_submitted, db, leave, recipient_email=employee.email,
            ),
            description=f"leave #{request_number} to employee {employee.id}",
        )

        return LeaveApplyResponse(leave_id=leave.id, request_number=request_number)

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_leave_status(
        db: AsyncSession,
        leave_id: uuid.UUID,
        data: LeaveStatusUpdateRequest,
        actor: Actor,
    ) -> MessageResponse:
        """Record *actor*'s decision, recompute the status and update the ledger."""
        workflow.ensure_role_can_approve(actor)

        result = await db.execute(
            select(LeaveRequest).where(LeaveRequest.id == leave_id).with_for_update()
        )
        leave = result.scalars().first()
        if leave is None:
            raise ValidationException({"leave_id": ["Leave not found."]})

        old_status = leave.status

        actor_detail = None
        if actor.id not in leave.approvers:
            approver = await CoreHRService.get_employee(db, actor.id)
            if approver is not None:
                actor_detail = f"{approver.full_name} <{approver.email}>"

        now = datetime.now(timezone.utc)
        new_status = workflow.apply_decision(
            leave, actor, data.approval_status, data.comment, now,
            actor_detail=actor_detail,
        )

        try:
            await db.flush()
        except StaleDataError as exc:
            logger.warning("Concurrent update on leave %s by %s", leave.id, actor.id)
            raise ConflictError() from exc

        await upsert_leave_allocations(
            db, leave, old_status, new_status, actor_id=actor.id,
        )

        action = "approve" if data.approval_status.value == "APPROVED" else "reject"
        await create_audit_entry(
            db,
            action=action,
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values={"status": new_status.value, "comment": data.comment},
        )

        logger.info(
            "Leave #%s %s by %s (%s): %s -> %s",
            leave.request_number, action, actor.id, actor.role.value,
            old_status.value, new_status.value,
        )

        employee = await db.get(Employee, leave.employee_id)
        await NotificationService.send_best_effort(
            db,
            functools.partial(
                notify_leave_decided,
                db, leave,
                decided_by=actor_detail or actor.email,
                comment=data.comment,
                recipient_email=employee.email if employee else None,
            ),
            description=f"leave #{leave.request_number} decision to employee {leave.employee_id}",
        )

        return MessageResponse(
            message=f"Leave {data.approval_status.value.lower()} successfully."
        )

    # ─────────────────────────────────────────────────────────────────
    # Balance / Allocation
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_leave_balance(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: Optional[int],
        actor: Actor,
    ) -> list[LeaveBalanceOut]:
        """Per-type balance derived from approved requests and joining date."""
        LeaveService._ensure_can_view(actor, employee_id)
        employee = await LeaveService._get_employee_or_raise(db, employee_id)

        year = year or date.today().year
        applied = await get_applied_leaves(db, employee.id, year)
        entries = calculate_leave_balance(applied, employee.date_of_joining, year)
        return [LeaveBalanceOut.from_entry(entry) for entry in entries]

    @staticmethod
    async def get_leave_allocation(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: Optional[int],
        actor: Actor,
    ) -> list[LeaveAllocationOut]:
        """Ledger rows for the year, without rows that were never used."""
        LeaveService._ensure_can_view(actor, employee_id)
        employee = await LeaveService._get_employee_or_raise(db, employee_id)

        year = year or date.today().year
        rows = await get_allocations(db, employee.id, year)
        return [
            LeaveAllocationOut.from_row(row, balance)
            for row, balance in visible_allocations(rows)
        ]

    @staticmethod
    async def update_leave_allocation(
        db: AsyncSession,
        data: LeaveAllocationUpdateRequest,
        actor: Actor,
    ) -> LeaveAllocationUpdateResponse:
        if not policy.can_manage_allocations(actor.role):
            raise ForbiddenException(
                "Access denied. Only HR and Super User can update leave allocations."
            )

        count = await apply_allocation_updates(
            db,
            [
                AllocationUpdate(
                    id=item.id,
                    leaves_allocated=item.leaves_allocated,
                    leaves_carry_forwarded=item.leaves_carry_forwarded,
                )
                for item in data.allocations
            ],
            actor_id=actor.id,
        )
        return LeaveAllocationUpdateResponse(
            message="Leave allocations updated successfully.", count=count,
        )

    # ─────────────────────────────────────────────────────────────────
    # Listings
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_employee_leaves(
        db: AsyncSession,
        employee_id: uuid.UUID,
        filters: LeaveFilters,
        pagination: PaginationParams,
        actor: Actor,
    ) -> PaginatedResponse:
        """One employee's leave requests, newest first."""
        LeaveService._ensure_can_view(actor, employee_id)

        query = select(LeaveRequest).where(LeaveRequest.employee_id == employee_id)
        query = LeaveService._apply_filters(query, filters)
        return await paginate(db, query, pagination, transform=LeaveRequestOut.model_validate)

    @staticmethod
    async def get_reportee_leaves(
        db: AsyncSession,
        filters: LeaveFilters,
        pagination: PaginationParams,
        actor: Actor,
    ) -> PaginatedResponse:
        """Leaves the actor oversees.

        HR and super users see every request except their own; managers and
        directors see the requests that list them as an approver.
        """
        if not policy.can_view_reportees(actor.role):
            raise ForbiddenException(
                "Access denied. Only managers, directors, and HR can view reportee leaves."
            )

        query = select(LeaveRequest)
        if policy.sees_all_reportees(actor.role):
            query = query.where(LeaveRequest.employee_id != actor.id)
        else:
            query = query.where(
                LeaveRequest.approvers.any(LeaveApprover.approver_id == actor.id)
            )
        query = LeaveService._apply_filters(query, filters)
        return await paginate(db, query, pagination, transform=LeaveRequestOut.model_validate)
