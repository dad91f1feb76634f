"""Global exception handlers for the application."""
from typing import Union
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from pydantic import ValidationError

from medaid.exceptions import MedAidException
from medaid.utils.logging_config import get_logger

logger = get_logger(__name__)


def _error_body(error_type: str, message: str, details: dict = None) -> dict:
    return {
        "error": {
            "type": error_type,
            "message": message,
            "details": details or {},
        }
    }


async def medaid_exception_handler(
    request: Request, exc: MedAidException
) -> JSONResponse:
    """
    Handle domain exceptions raised by services and routes.

    Args:
        request: FastAPI request object
        exc: MedAid exception

    Returns:
        JSON response with error details
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"MedAid exception: {exc.message}",
        extra={
            "extra_fields": {
                "exception_type": exc.__class__.__name__,
                "status_code": exc.status_code,
                "details": exc.details,
                "path": request.url.path,
                "method": request.method,
            }
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.__class__.__name__, exc.message, exc.details),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Handle standard HTTP exceptions."""
    extra = {
        "extra_fields": {
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        }
    }
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}", extra=extra)
    elif exc.status_code >= 400:
        logger.warning(f"HTTP {exc.status_code}: {exc.detail}", extra=extra)

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTPException", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """
    Handle request validation errors from Pydantic.

    Args:
        request: FastAPI request object
        exc: Validation error

    Returns:
        JSON response with validation error details
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]

    logger.warning(
        f"Validation error: {len(errors)} field(s) failed validation",
        extra={
            "extra_fields": {
                "validation_errors": errors,
                "path": request.url.path,
                "method": request.method,
            }
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(
            "ValidationError",
            "Request validation failed",
            {"validation_errors": errors},
        ),
    )


async def sqlalchemy_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Handle SQLAlchemy database errors without exposing SQL."""
    logger.error(
        f"Database error: {str(exc)}",
        exc_info=True,
        extra={
            "extra_fields": {
                "exception_type": exc.__class__.__name__,
                "path": request.url.path,
                "method": request.method,
            }
        },
    )

    if isinstance(exc, IntegrityError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=_error_body(
                "DatabaseIntegrityError",
                "Database constraint violation. Resource may already exist.",
            ),
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "DatabaseError",
            "A database error occurred. Please try again later.",
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle any unhandled exceptions.

    This is the fallback handler for unexpected errors; internal details are
    logged but never returned to the caller.
    """
    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={
            "extra_fields": {
                "exception_type": exc.__class__.__name__,
                "path": request.url.path,
                "method": request.method,
            }
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "InternalServerError",
            "An unexpected error occurred. Please try again later.",
        ),
    )
