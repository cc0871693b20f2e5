import logging
import traceback
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from app.utils.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


def _error_body(message: str, code: str, details: list | None = None, field: str | None = None) -> dict:
    return {
        "success": False,
        "message": message,
        "error": {
            "code": code,
            "details": details,
            "field": field,
        }
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle all AppException subclasses (our custom exceptions)."""
    detail = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": detail.get("message", "An error occurred"),
            "error": detail.get("error", {"code": ErrorCode.INTERNAL_SERVER_ERROR}),
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle Pydantic validation errors.
    Answered with 400 and our standardized format instead of FastAPI's 422.
    """
    details = []
    for error in exc.errors():
        # loc is a tuple like ("body", "email")
        loc = error.get("loc", [])
        field = ".".join(str(l) for l in loc if l != "body") if loc else "unknown"
        details.append({
            "field": field or "body",
            "message": error.get("msg", "Invalid value"),
        })

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Validation error. Please check your input.",
                            ErrorCode.VALIDATION_ERROR, details=details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    Handle SQLAlchemy IntegrityError, e.g. two registrations racing for one email.
    Prevents raw DB errors from leaking to the client.
    """
    logger.warning(f"IntegrityError on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body("A record with this data already exists.", ErrorCode.DUPLICATE_ENTRY),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.
    Logs the full traceback, returns a safe 500 response.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}\n"
        f"{traceback.format_exc()}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An unexpected error occurred. Please try again later.",
                            ErrorCode.INTERNAL_SERVER_ERROR),
    )
