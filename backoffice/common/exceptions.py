"""Leave engine errors rendered as RFC 7807 problem details.

Every error the service raises on purpose derives from ``AppException`` and
carries its own status, problem type and title. Handlers registered by
``register_exception_handlers`` turn them, and FastAPI's request validation
errors, into ``application/problem+json`` bodies.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

BASE_ERROR_URI = "https://backoffice.local/errors"
PROBLEM_JSON = "application/problem+json"

FieldErrors = dict[str, list[str]]


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for errors reported to the client as a problem detail."""

    status_code: int = 400
    error_type: str = "bad-request"
    title: str = "Bad Request"
    default_detail: str = "The request could not be processed."

    def __init__(
        self,
        detail: Optional[str] = None,
        errors: Optional[FieldErrors] = None,
    ) -> None:
        self.detail = detail or self.default_detail
        self.errors = errors
        super().__init__(self.detail)

    def to_problem(self, instance: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": f"{BASE_ERROR_URI}/{self.error_type}",
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            "instance": instance,
        }
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationException(AppException):
    """422: a business rule rejected the input (overlap, missing manager, ...)."""

    status_code = 422
    error_type = "validation-error"
    title = "Validation Error"
    default_detail = "One or more fields failed validation."

    def __init__(self, errors: FieldErrors) -> None:
        super().__init__(errors=errors)


class ForbiddenException(AppException):
    """403: the actor's role or approver membership does not allow the action."""

    status_code = 403
    error_type = "forbidden"
    title = "Forbidden"
    default_detail = "You do not have permission to perform this action."


class ConflictError(AppException):
    """409: another writer changed the leave request first."""

    status_code = 409
    error_type = "conflict"
    title = "Conflict"
    default_detail = "The resource was modified concurrently. Please retry."


class InternalError(AppException):
    """500: storage or ledger failure. The cause is logged, never returned."""

    status_code = 500
    error_type = "internal-error"
    title = "Internal Server Error"
    default_detail = "An internal error occurred. Please try again later."


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.title)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_problem(request.url.path),
        media_type=PROBLEM_JSON,
    )


def _field_name(loc: tuple) -> str:
    # Drop the leading "body" / "query" / "path" segment
    if len(loc) > 1:
        return ".".join(str(part) for part in loc[1:])
    return str(loc[0]) if loc else "unknown"


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: FieldErrors = {}
    for err in exc.errors():
        field_errors.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(
            err.get("msg", "Invalid value")
        )

    problem = ValidationException(field_errors)
    problem.detail = "Request validation failed."
    return JSONResponse(
        status_code=problem.status_code,
        content=problem.to_problem(request.url.path),
        media_type=PROBLEM_JSON,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the problem-detail handlers to *app*."""
    app.add_exception_handler(AppException, _handle_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
