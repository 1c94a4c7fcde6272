"""Auth dependencies — JWT validation and the acting principal."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.constants import UserRole
from backoffice.config import settings
from backoffice.core_hr.service import CoreHRService
from backoffice.database import get_db


@dataclass(frozen=True)
class Actor:
    """Authenticated principal: an employee, or a customer contact."""

    id: uuid.UUID
    role: UserRole
    email: str


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Validate JWT, verify the principal is active, return the Actor."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    try:
        subject_id = uuid.UUID(payload["sub"])
        role = UserRole(payload.get("role", UserRole.employee.value))
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token claims.")

    # Customer contacts are not employees
    if role == UserRole.customer:
        principal = await CoreHRService.get_customer(db, subject_id)
    else:
        principal = await CoreHRService.get_employee(db, subject_id)
    if principal is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    request.state.user_role = role

    return Actor(id=subject_id, role=role, email=principal.email)
