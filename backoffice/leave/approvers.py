"""Approver chain for a new leave request: reporting manager, optional
secondary approver, then the customer contact when the employee's active
allocation asks for customer approval."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth import policy
from backoffice.common.constants import ApprovalStatus, UserRole
from backoffice.common.exceptions import ValidationException
from backoffice.core_hr.models import Employee
from backoffice.core_hr.service import CoreHRService
from backoffice.leave.models import LeaveApprover


def _approving_role(employee: Employee) -> UserRole:
    if employee.role is not None and policy.can_approve(employee.role):
        return employee.role
    return UserRole.manager


def _employee_approver(employee: Employee) -> LeaveApprover:
    return LeaveApprover(
        approver_id=employee.id,
        approver_role=_approving_role(employee),
        approver_detail=f"{employee.full_name} <{employee.email}>",
        approval_status=ApprovalStatus.requested,
    )


async def build_approver_chain(
    db: AsyncSession,
    employee: Employee,
    secondary_approver_id: Optional[uuid.UUID] = None,
) -> list[LeaveApprover]:
    """Ordered approvers for a new request, all at REQUESTED."""
    if employee.reporting_manager_id is None:
        raise ValidationException(
            {"employee_id": [
                "Employee does not have a reporting manager assigned. Please contact HR."
            ]}
        )
    manager = await CoreHRService.get_employee(db, employee.reporting_manager_id)
    if manager is None:
        raise ValidationException(
            {"employee_id": ["Reporting manager details not found. Please contact HR."]}
        )
    chain = [_employee_approver(manager)]

    if secondary_approver_id is not None:
        secondary = await CoreHRService.get_employee(db, secondary_approver_id)
        if secondary is None:
            raise ValidationException(
                {"secondary_approver_id": ["Secondary approver not found."]}
            )
        if secondary.id != manager.id:
            chain.append(_employee_approver(secondary))

    allocation = await CoreHRService.get_customer_allocation(db, employee.id)
    if allocation is not None and allocation.customer_approver:
        chain.append(
            LeaveApprover(
                approver_id=allocation.customer_id,
                approver_role=UserRole.customer,
                approver_detail=f"{allocation.customer_name} (Customer)",
                approval_status=ApprovalStatus.requested,
            )
        )

    return chain


async def approver_email(db: AsyncSession, approver: LeaveApprover) -> Optional[str]:
    """Contact address for an approver entry, or None if the party is gone."""
    if approver.approver_role is UserRole.customer:
        party = await CoreHRService.get_customer(db, approver.approver_id)
    else:
        party = await CoreHRService.get_employee(db, approver.approver_id)
    return party.email if party is not None else None
