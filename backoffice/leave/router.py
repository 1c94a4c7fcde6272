"""Leave router — apply, approve/reject, balances, allocations, listings.

All endpoints require authentication. Role checks live in LeaveService.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import Actor, get_current_user
from backoffice.common.constants import LeaveStatus
from backoffice.common.pagination import PaginatedResponse, PaginationParams
from backoffice.common.rate_limit import limiter
from backoffice.config import settings
from backoffice.database import get_db
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
from backoffice.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


def _filters(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    leave_type: Optional[str] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
) -> LeaveFilters:
    return LeaveFilters(year=year, leave_type=leave_type, status=status)


# ── POST /apply ─────────────────────────────────────────────────────

@router.post("/apply", response_model=LeaveApplyResponse, status_code=201)
@limiter.limit(settings.LEAVE_WRITE_RATE_LIMIT)
async def apply_leave(
    request: Request,
    body: LeaveApplyRequest,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Apply for leave. Builds the approver chain and notifies approvers."""
    return await LeaveService.apply_leave(db, body, actor)


# ── PUT /{leave_id}/status ──────────────────────────────────────────

@router.put("/{leave_id}/status", response_model=MessageResponse)
@limiter.limit(settings.LEAVE_WRITE_RATE_LIMIT)
async def update_leave_status(
    request: Request,
    leave_id: uuid.UUID,
    body: LeaveStatusUpdateRequest,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a leave request as one of its approvers (or HR)."""
    return await LeaveService.update_leave_status(db, leave_id, body, actor)


# ── GET /balance/{employee_id} ──────────────────────────────────────

@router.get("/balance/{employee_id}", response_model=list[LeaveBalanceOut])
async def get_leave_balance(
    employee_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remaining days per leave type. Defaults to the current year."""
    return await LeaveService.get_leave_balance(db, employee_id, year, actor)


# ── GET /allocation/{employee_id} ───────────────────────────────────

@router.get("/allocation/{employee_id}", response_model=list[LeaveAllocationOut])
async def get_leave_allocation(
    employee_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_allocation(db, employee_id, year, actor)


# ── PUT /allocation ─────────────────────────────────────────────────

@router.put("/allocation", response_model=LeaveAllocationUpdateResponse)
@limiter.limit(settings.LEAVE_WRITE_RATE_LIMIT)
async def update_leave_allocation(
    request: Request,
    body: LeaveAllocationUpdateRequest,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """HR / super user edit of allocated and carried-forward days."""
    return await LeaveService.update_leave_allocation(db, body, actor)


# ── GET /employee/{employee_id} ─────────────────────────────────────

@router.get("/employee/{employee_id}", response_model=PaginatedResponse[LeaveRequestOut])
async def get_employee_leaves(
    employee_id: uuid.UUID,
    filters: LeaveFilters = Depends(_filters),
    pagination: PaginationParams = Depends(PaginationParams),
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Leave requests of one employee, newest first."""
    return await LeaveService.get_employee_leaves(db, employee_id, filters, pagination, actor)


# ── GET /reportees ──────────────────────────────────────────────────

@router.get("/reportees", response_model=PaginatedResponse[LeaveRequestOut])
async def get_reportee_leaves(
    filters: LeaveFilters = Depends(_filters),
    pagination: PaginationParams = Depends(PaginationParams),
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Leave requests the caller oversees as approver, or all of them for HR."""
    return await LeaveService.get_reportee_leaves(db, filters, pagination, actor)
