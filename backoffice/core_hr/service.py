"""Core HR service layer — employee and customer lookups used by the leave engine."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.constants import AllocationStatus
from backoffice.core_hr.models import Customer, Employee, ResourceAllocation


@dataclass(frozen=True)
class CustomerAllocation:
    """Active customer placement of an employee."""

    customer_id: uuid.UUID
    customer_name: str
    email: str
    customer_approver: bool


# ═════════════════════════════════════════════════════════════════════
# CoreHRService
# ═════════════════════════════════════════════════════════════════════


class CoreHRService:
    """Async read operations over employees and customers."""

    @staticmethod
    async def get_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Optional[Employee]:
        """Return the active employee, optionally row-locked for the transaction."""
        query = select(Employee).where(
            Employee.id == employee_id,
            Employee.is_active.is_(True),
        )
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def get_customer(
        db: AsyncSession,
        customer_id: uuid.UUID,
    ) -> Optional[Customer]:
        result = await db.execute(
            select(Customer).where(
                Customer.id == customer_id,
                Customer.is_active.is_(True),
            )
        )
        return result.scalars().first()

    @staticmethod
    async def get_customer_allocation(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Optional[CustomerAllocation]:
        """Return the employee's active customer allocation, if any."""
        result = await db.execute(
            select(ResourceAllocation, Customer)
            .join(Customer, Customer.id == ResourceAllocation.customer_id)
            .where(
                ResourceAllocation.employee_id == employee_id,
                ResourceAllocation.status == AllocationStatus.active,
            )
            .order_by(ResourceAllocation.created_at.desc())
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None
        allocation, customer = row
        return CustomerAllocation(
            customer_id=customer.id,
            customer_name=customer.name,
            email=customer.email,
            customer_approver=bool(allocation.customer_approver),
        )

    @staticmethod
    async def list_active_employees(db: AsyncSession) -> Sequence[Employee]:
        result = await db.execute(
            select(Employee)
            .where(Employee.is_active.is_(True))
            .order_by(Employee.employee_code)
        )
        return result.scalars().all()
