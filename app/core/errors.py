"""
Central error handling for the Shift Timekeeping service

Domain errors raised by the services map onto HTTP responses here; the services
themselves never build HTTP responses.
"""
import logging
import traceback
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = logging.getLogger(__name__)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


class TimekeepingError(Exception):
    """Base class for errors raised by the timekeeping core."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "TIMEKEEPING_ERROR"
    default_detail: str = "Timekeeping error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# --- validation ---

class ValidationFailed(TimekeepingError):
    code = "VALIDATION_FAILED"
    default_detail = "Invalid request"


class NoShiftAssigned(TimekeepingError):
    code = "NO_SHIFT_ASSIGNED"
    default_detail = "Cannot clock in. You have no shift assigned."


class EmployeeNotFound(TimekeepingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "EMPLOYEE_NOT_FOUND"
    default_detail = "Employee not found"


# --- state conflicts ---

class NotClockedIn(TimekeepingError):
    code = "NOT_CLOCKED_IN"
    default_detail = "You are not currently clocked in."


class AlreadyClockedIn(TimekeepingError):
    code = "ALREADY_CLOCKED_IN"
    default_detail = "You are already clocked in."


class ActiveBreakBlocksClockOut(TimekeepingError):
    code = "ACTIVE_BREAK_BLOCKS_CLOCK_OUT"
    default_detail = "You must end your break before clocking out."


class AlreadyOnBreak(TimekeepingError):
    code = "ALREADY_ON_BREAK"
    default_detail = "You are already on a break."


class NoActiveBreak(TimekeepingError):
    code = "NO_ACTIVE_BREAK"
    default_detail = "No active break to end."


class ExtraBreakNotApproved(TimekeepingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "EXTRA_BREAK_NOT_APPROVED"
    default_detail = "You do not have an approved extra break to use."


# --- inconsistencies ---

class DataInconsistency(TimekeepingError):
    """Storage state that should be impossible. Always logged at ERROR and surfaced as 500."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DATA_INCONSISTENCY"
    default_detail = "Attendance data is inconsistent"


def _error_body(status_code: int, detail, path: str, code: Optional[str] = None) -> dict:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": path,
    }
    if code:
        body["code"] = code
    return body


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.detail, str(request.url.path)),
        headers=_CORS_HEADERS,
    )


async def timekeeping_exception_handler(request: Request, exc: TimekeepingError) -> JSONResponse:
    """
    Handle domain errors from the timekeeping services.

    State conflicts carry a user-facing reason; DataInconsistency is logged loudly
    and, in prod, its detail is replaced with a generic message.
    """
    from app.core.config import settings

    detail = exc.detail
    if isinstance(exc, DataInconsistency):
        logger.error("Data inconsistency on %s: %s", request.url.path, exc.detail)
        if settings.APP_ENV == "prod":
            detail = DataInconsistency.default_detail

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, detail, str(request.url.path), code=exc.code),
        headers=_CORS_HEADERS,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    # In production, return generic error message
    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(422, "Validation error: Invalid request data", str(request.url.path)),
        )

    # In development/staging, return detailed errors (sanitize for JSON: e.g. ctx.error ValueError -> str)
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    body = _error_body(422, "Validation error", str(request.url.path))
    body["errors"] = errors
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(500, "Internal server error", str(request.url.path)),
            headers=_CORS_HEADERS,
        )

    body = _error_body(500, str(exc), str(request.url.path))
    body["traceback"] = traceback.format_exc() if settings.APP_ENV == "local" else None
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body,
        headers=_CORS_HEADERS,
    )
