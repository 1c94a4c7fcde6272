"""Leave allocation ledger: pro-rated yearly allocation, carry-forward, and
keeping ``leaves_applied`` in step with approval outcomes.

Business logic:
  - Allocation pro-ration rounds the lapsed share in both branches
  - Carry-forward moves half of a prior combined CL/PL balance above 1 day
  - Approving adds a request's days to its ledger row; reversing an
    approval subtracts them again
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import (
    COMBINED_CASUAL_PRIVILEGED,
    ORG_LEAVE_POLICY,
    LeaveStatus,
)
from backoffice.common.exceptions import InternalError, ValidationException
from backoffice.config import settings
from backoffice.core_hr.service import CoreHRService
from backoffice.leave.balance import (
    UNBOUNDED,
    Balance,
    Bounded,
    ledger_leave_type,
    org_allocation,
)
from backoffice.leave.calculations import js_round, leave_days, month_share
from backoffice.leave.models import LeaveAllocation, LeaveRequest
from backoffice.leave.workflow import LedgerEffect, ledger_effect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationUpdate:
    id: uuid.UUID
    leaves_allocated: Decimal
    leaves_carry_forwarded: Decimal


# ═════════════════════════════════════════════════════════════════════
# Pro-rated allocation
# ═════════════════════════════════════════════════════════════════════


def lapsed_for_allocation(allocated: Decimal, joining_date: date) -> Decimal:
    months = joining_date.month if joining_date.day >= 15 else joining_date.month - 1
    return js_round(month_share(allocated, months))


def calculate_employee_leave_allocation(
    joining_date: date,
    year: int,
    policy: Sequence[tuple[str, Decimal]] = ORG_LEAVE_POLICY,
) -> list[tuple[str, Decimal]]:
    """Allocated days per org leave type for *year*."""
    if joining_date.year < year:
        return [(leave_type, Decimal(allocated)) for leave_type, allocated in policy]
    return [
        (leave_type, Decimal(allocated) - lapsed_for_allocation(allocated, joining_date))
        for leave_type, allocated in policy
    ]


def carry_forward_amount(previous_balance: Decimal) -> Decimal:
    """Share of last year's combined CL/PL balance carried into the new year."""
    if previous_balance > 1:
        return previous_balance * Decimal(str(settings.CARRY_FORWARD_PERCENTAGE))
    return Decimal("0")


# ═════════════════════════════════════════════════════════════════════
# Ledger storage
# ═════════════════════════════════════════════════════════════════════


async def get_allocation_row(
    db: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    leave_type: str,
    *,
    for_update: bool = False,
) -> Optional[LeaveAllocation]:
    query = select(LeaveAllocation).where(
        LeaveAllocation.employee_id == employee_id,
        LeaveAllocation.year == year,
        LeaveAllocation.leave_type == leave_type,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalars().first()


async def get_allocations(
    db: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
) -> Sequence[LeaveAllocation]:
    result = await db.execute(
        select(LeaveAllocation)
        .where(
            LeaveAllocation.employee_id == employee_id,
            LeaveAllocation.year == year,
        )
        .order_by(LeaveAllocation.created_at, LeaveAllocation.leave_type)
    )
    return result.scalars().all()


async def allocate_employee_leaves(
    db: AsyncSession,
    employee_id: uuid.UUID,
    joining_date: date,
    year: int,
    carry_forward: Optional[Mapping[str, Decimal]] = None,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> list[LeaveAllocation]:
    """Insert one ledger row per org leave type for the employee/year."""
    carry_forward = carry_forward or {}
    rows = [
        LeaveAllocation(
            employee_id=employee_id,
            leave_type=leave_type,
            year=year,
            leaves_allocated=allocated,
            leaves_carry_forwarded=carry_forward.get(leave_type, Decimal("0")),
            leaves_applied=Decimal("0"),
            created_by=actor_id,
            updated_by=actor_id,
        )
        for leave_type, allocated in calculate_employee_leave_allocation(joining_date, year)
    ]
    db.add_all(rows)
    await db.flush()

    logger.info(
        "Allocated %d leave types to employee %s for %s", len(rows), employee_id, year,
    )
    return rows


async def leave_allocation_process_for_employee(
    db: AsyncSession,
    employee_id: uuid.UUID,
    joining_date: date,
    year: int,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> list[LeaveAllocation]:
    """Allocate *year* for an employee, carrying forward last year's CL/PL."""
    previous = await get_allocation_row(
        db, employee_id, year - 1, COMBINED_CASUAL_PRIVILEGED,
    )
    carried = Decimal("0")
    if previous is not None:
        carried = carry_forward_amount(previous.leaves_balance)
        if carried:
            logger.info(
                "Carrying forward %s days of %s for employee %s (previous balance %s)",
                carried, COMBINED_CASUAL_PRIVILEGED, employee_id, previous.leaves_balance,
            )

    return await allocate_employee_leaves(
        db,
        employee_id,
        joining_date,
        year,
        {COMBINED_CASUAL_PRIVILEGED: carried},
        actor_id=actor_id,
    )


# ═════════════════════════════════════════════════════════════════════
# Ledger upkeep on status transitions
# ═════════════════════════════════════════════════════════════════════


async def upsert_leave_allocations(
    db: AsyncSession,
    leave: LeaveRequest,
    old_status: LeaveStatus,
    new_status: LeaveStatus,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> Optional[LeaveAllocation]:
    """Apply the ledger effect of *leave* moving from *old_status* to *new_status*.

    Raises InternalError if the ledger cannot be written; the caller's
    transaction must then be rolled back.
    """
    effect = ledger_effect(old_status, new_status)
    if effect is LedgerEffect.none:
        return None

    year = leave.created_at.year
    leave_type = ledger_leave_type(leave.leave_type)
    days = leave_days(leave.start_date, leave.end_date, leave.is_half_day)

    try:
        row = await get_allocation_row(
            db, leave.employee_id, year, leave_type, for_update=True,
        )
        if row is not None:
            if effect is LedgerEffect.add:
                row.leaves_applied = Decimal(row.leaves_applied) + days
            else:
                row.leaves_applied = Decimal(row.leaves_applied) - days
            row.updated_by = actor_id
        elif effect is LedgerEffect.add:
            # Unlimited types are never pre-allocated; track usage only
            row = LeaveAllocation(
                employee_id=leave.employee_id,
                leave_type=leave_type,
                year=year,
                leaves_allocated=Decimal("0"),
                leaves_carry_forwarded=Decimal("0"),
                leaves_applied=days,
                created_by=actor_id,
                updated_by=actor_id,
            )
            db.add(row)
        else:
            logger.warning(
                "No %s allocation for employee %s in %s to reverse leave %s",
                leave_type, leave.employee_id, year, leave.request_number,
            )
            return None
        await db.flush()
    except SQLAlchemyError as exc:
        logger.exception(
            "Ledger update failed for leave %s (%s → %s)",
            leave.id, old_status.value, new_status.value,
        )
        raise InternalError() from exc

    logger.info(
        "Ledger %s %s days for employee %s, %s %s (applied now %s)",
        effect.value, days, leave.employee_id, leave_type, year, row.leaves_applied,
    )
    return row


# ═════════════════════════════════════════════════════════════════════
# Reporting and HR edits
# ═════════════════════════════════════════════════════════════════════


def allocation_balance(row: LeaveAllocation) -> Balance:
    """Reported balance of a ledger row.

    Policy types stay bounded even when used up or overdrawn; only types
    outside the org policy report as unlimited.
    """
    if org_allocation(row.leave_type) is None:
        return UNBOUNDED
    return Bounded(row.leaves_balance)


def visible_allocations(
    rows: Iterable[LeaveAllocation],
) -> list[tuple[LeaveAllocation, Balance]]:
    """Drop rows with nothing allocated and nothing applied."""
    return [
        (row, allocation_balance(row))
        for row in rows
        if not (Decimal(row.leaves_allocated) == 0 and Decimal(row.leaves_applied) == 0)
    ]


async def apply_allocation_updates(
    db: AsyncSession,
    updates: Sequence[AllocationUpdate],
    *,
    actor_id: uuid.UUID,
) -> int:
    """Overwrite allocated and carried-forward days on existing ledger rows."""
    ids = [update.id for update in updates]
    result = await db.execute(
        select(LeaveAllocation).where(LeaveAllocation.id.in_(ids)).with_for_update()
    )
    rows = {row.id: row for row in result.scalars().all()}

    missing = [str(row_id) for row_id in ids if row_id not in rows]
    if missing:
        raise ValidationException(
            {"leave_allocation": [f"Leave allocation not found: {', '.join(missing)}."]}
        )

    for update in updates:
        row = rows[update.id]
        old_values = {
            "leaves_allocated": str(row.leaves_allocated),
            "leaves_carry_forwarded": str(row.leaves_carry_forwarded),
        }
        row.leaves_allocated = update.leaves_allocated
        row.leaves_carry_forwarded = update.leaves_carry_forwarded
        row.updated_by = actor_id
        await create_audit_entry(
            db,
            action="update_allocation",
            entity_type="leave_allocation",
            entity_id=row.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values={
                "leaves_allocated": str(update.leaves_allocated),
                "leaves_carry_forwarded": str(update.leaves_carry_forwarded),
            },
        )

    logger.info("Updated %d leave allocations by %s", len(updates), actor_id)
    return len(updates)


# ═════════════════════════════════════════════════════════════════════
# Year rollover
# ═════════════════════════════════════════════════════════════════════


@dataclass
class RolloverResult:
    year: int
    allocated: list[uuid.UUID] = field(default_factory=list)
    skipped: list[uuid.UUID] = field(default_factory=list)


async def roll_over_year(
    db: AsyncSession,
    year: int,
    *,
    dry_run: bool = False,
    actor_id: Optional[uuid.UUID] = None,
) -> RolloverResult:
    """Allocate *year* for every active employee that has no rows for it yet."""

    result = RolloverResult(year=year)
    for employee in await CoreHRService.list_active_employees(db):
        if employee.date_of_joining.year > year:
            result.skipped.append(employee.id)
            continue
        if await get_allocations(db, employee.id, year):
            logger.info("Employee %s already allocated for %s, skipping", employee.id, year)
            result.skipped.append(employee.id)
            continue
        if dry_run:
            logger.info("[DRY RUN] Would allocate %s for employee %s", year, employee.id)
        else:
            await leave_allocation_process_for_employee(
                db, employee.id, employee.date_of_joining, year, actor_id=actor_id,
            )
        result.allocated.append(employee.id)

    logger.info(
        "Rollover %s: %d allocated, %d skipped%s",
        year, len(result.allocated), len(result.skipped), " (dry run)" if dry_run else "",
    )
    return result
