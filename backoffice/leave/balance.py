"""Leave balance calculator.

Balances are derived from what an employee has applied for in a year and
when they joined. Leave types outside the org policy have no cap, and their
balance is the ``UNBOUNDED`` marker rather than a number.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Union

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.constants import (
    COMBINED_CASUAL_PRIVILEGED,
    ORG_LEAVE_POLICY,
    LeaveStatus,
    LeaveType,
)
from backoffice.leave.calculations import floor, js_round, month_share
from backoffice.leave.models import LeaveRequest

_MERGED_TYPES = frozenset({LeaveType.casual.value, LeaveType.privileged.value})


# ── Tagged balance value ────────────────────────────────────────────

@dataclass(frozen=True)
class Bounded:
    days: Decimal


@dataclass(frozen=True)
class Unbounded:
    pass


UNBOUNDED = Unbounded()

Balance = Union[Bounded, Unbounded]


@dataclass(frozen=True)
class LeaveBalanceEntry:
    leave_type: str
    balance: Balance
    leaves_applied: Decimal


# ── Leave type helpers ──────────────────────────────────────────────

def org_allocation(leave_type: str) -> Optional[Decimal]:
    """Yearly allocation for *leave_type*, or None for unlimited types."""
    for policy_type, allocated in ORG_LEAVE_POLICY:
        if policy_type == leave_type:
            return allocated
    return None


def ledger_leave_type(leave_type: str) -> str:
    """Leave type under which applied days are tracked."""
    if leave_type in _MERGED_TYPES:
        return COMBINED_CASUAL_PRIVILEGED
    return leave_type


def merge_casual_privileged(applied: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Pool Casual and Privileged leave into the combined type."""
    merged: dict[str, Decimal] = {}
    pooled = Decimal("0")
    for leave_type, days in applied.items():
        if leave_type in _MERGED_TYPES:
            pooled += Decimal(days)
        else:
            merged[leave_type] = merged.get(leave_type, Decimal("0")) + Decimal(days)
    if pooled > 0:
        merged[COMBINED_CASUAL_PRIVILEGED] = (
            merged.get(COMBINED_CASUAL_PRIVILEGED, Decimal("0")) + pooled
        )
    return merged


# ── Pro-ration ──────────────────────────────────────────────────────

def lapsed_for_balance(allocated: Decimal, joining_date: date) -> Decimal:
    """Leaves lapsed before joining, as counted for balances.

    Joining on or after the 15th forfeits the joining month. Only the
    earlier branch is floored.
    """
    if joining_date.day >= 15:
        return month_share(allocated, joining_date.month)
    return floor(month_share(allocated, joining_date.month - 1))


def calculate_leave_balance(
    applied: Mapping[str, Decimal],
    joining_date: date,
    year: int,
) -> list[LeaveBalanceEntry]:
    """Balance per leave type for *year*.

    *applied* maps leave type to approved days and is merged before use.
    Applied types come first, then untouched org types at full allocation.
    """
    merged = merge_casual_privileged(applied)
    full_year = joining_date.year < year

    entries: list[LeaveBalanceEntry] = []
    for leave_type, days in merged.items():
        allocated = org_allocation(leave_type)
        if allocated is None:
            entries.append(LeaveBalanceEntry(leave_type, UNBOUNDED, days))
            continue
        if full_year:
            remaining = js_round(allocated - days)
        else:
            lapsed = lapsed_for_balance(allocated, joining_date)
            remaining = js_round(allocated - lapsed - days)
        entries.append(LeaveBalanceEntry(leave_type, Bounded(remaining), days))

    for leave_type, allocated in ORG_LEAVE_POLICY:
        if leave_type not in merged:
            entries.append(LeaveBalanceEntry(leave_type, Bounded(allocated), Decimal("0")))

    return entries


# ── Storage ─────────────────────────────────────────────────────────

async def get_applied_leaves(
    db: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
) -> dict[str, Decimal]:
    """Sum approved leave days per type for requests touching *year*."""
    year_start, year_end = date(year, 1, 1), date(year, 12, 31)
    result = await db.execute(
        select(LeaveRequest.leave_type, func.sum(LeaveRequest.leave_days))
        .where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.approved,
            or_(
                and_(LeaveRequest.start_date >= year_start, LeaveRequest.start_date <= year_end),
                and_(LeaveRequest.end_date >= year_start, LeaveRequest.end_date <= year_end),
            ),
        )
        .group_by(LeaveRequest.leave_type)
    )
    return {leave_type: Decimal(total or 0) for leave_type, total in result.all()}
