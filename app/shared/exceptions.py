"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"
    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


class ConflictException(AppException):
    """Raised when entity conflicts with current state."""

    status_code = 409
    code = "conflict"


class BusinessRuleException(AppException):
    """Raised when business rule validation fails."""

    status_code = 422
    code = "business_rule_violation"


class InvalidTimeFormatException(BusinessRuleException):
    """Raised when a time label or date key cannot be parsed."""

    code = "invalid_time_format"


class OutOfRangeException(BusinessRuleException):
    """Raised when a session would run past the daily grid."""

    code = "out_of_range"


class InvalidDocumentPathException(BusinessRuleException):
    """Raised when an id would not address a single document."""

    code = "invalid_path"


class SlotUnavailableException(ConflictException):
    """Raised when requested grid cells are not currently open."""

    code = "slot_unavailable"


class InvalidTransitionException(ConflictException):
    """Raised when booking status change is not allowed from current state."""

    code = "invalid_transition"


class TransactionConflictException(ConflictException):
    """Raised when optimistic concurrency retries are exhausted."""

    code = "transaction_conflict"
    retryable = True


class StoreUnavailableException(AppException):
    """Raised when the document store cannot be reached."""

    status_code = 503
    code = "store_unavailable"
    retryable = True


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "retryable": exc.retryable,
            },
        },
    )


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail), "retryable": False}},
    )


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": {"code": "internal_error", "message": "Internal server error", "retryable": False},
        },
    )


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
