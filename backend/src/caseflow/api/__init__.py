"""FastAPI routes and API modules for caseflow.

Provides common response models and error handlers. Workflow errors keep
their machine-readable kind and context; the message is the only
human-facing part.
"""

from typing import Any, Generic, TypeVar

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import (
    AlreadyResolved,
    CaseflowError,
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    PartiallyApplied,
    PreconditionFailed,
    StoreUnavailable,
)

T = TypeVar("T")


# =========================
# Response Models
# =========================


class ListResponse(BaseModel, Generic[T]):
    """List endpoint wrapper."""

    items: list[T]
    total: int


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    error_code: str
    details: list[ErrorDetail] | None = None


# Most specific class first
STATUS_CODES: list[tuple[type[CaseflowError], int]] = [
    (NotFound, 404),
    (InvalidTransition, 409),
    (PreconditionFailed, 412),
    (Forbidden, 403),
    (AlreadyResolved, 409),
    (Conflict, 409),
    (PartiallyApplied, 500),
    (StoreUnavailable, 503),
]


def status_code_for(exc: CaseflowError) -> int:
    for error_class, status_code in STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 500


# =========================
# Exception Handlers
# =========================


async def caseflow_error_handler(request: Request, exc: CaseflowError) -> JSONResponse:
    """Handle workflow errors raised by the core."""
    error_code = exc.kind.upper()
    return JSONResponse(
        status_code=status_code_for(exc),
        content=ErrorResponse(
            error=exc.message,
            error_code=error_code,
            details=[
                ErrorDetail(code=error_code, message=exc.message, details=exc.context or None)
            ],
        ).model_dump(mode="json"),
        headers={"X-Error-Code": error_code},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle generic HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            error_code="HTTP_ERROR",
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    from caseflow.logging import get_logger

    logger = get_logger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


def register_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(CaseflowError, caseflow_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
