import logging
import traceback
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from dealer_catalog.schemas.common import ErrorBody, ErrorResponse, format_errors
from dealer_catalog.utils.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


def _envelope(status_code: int, message: str, code: str,
              details: list | None = None, field: str | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, error=ErrorBody(code=code, details=details, field=field))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle all AppException subclasses (our custom exceptions)."""
    error = exc.detail.get("error") or {}
    return _envelope(
        exc.status_code,
        exc.detail.get("message", "An error occurred"),
        error.get("code", ErrorCode.INTERNAL_SERVER_ERROR),
        details=error.get("details"),
        field=error.get("field"),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError | ValidationError) -> JSONResponse:
    """
    Handle request and model validation errors (422).
    Converts pydantic's error list into our standardized format.
    """
    return _envelope(
        422,
        "Validation error. Please check your input.",
        ErrorCode.VALIDATION_ERROR,
        details=format_errors(exc.errors()),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    Handle SQLAlchemy IntegrityError (unique constraint violations, FK violations).
    Prevents raw DB errors from leaking to the client.
    """
    logger.warning(f"IntegrityError on {request.method} {request.url}: {exc.orig}")
    return _envelope(409, "A record with this data already exists.", ErrorCode.DUPLICATE_ENTRY)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.
    Logs the full traceback, returns a safe 500 response.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url}\n"
        f"{''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))}"
    )
    return _envelope(
        500,
        "An unexpected error occurred. Please try again later.",
        ErrorCode.INTERNAL_SERVER_ERROR,
    )
