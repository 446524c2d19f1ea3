"""
Error Handlers
Production-grade error handling that sanitizes sensitive information.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
import logging
import traceback

from finclick.core.exceptions import (
    AnalysisError, InsufficientDataError, StatementParseError, UnknownAnalysisError
)

logger = logging.getLogger(__name__)


def _client(request: Request) -> str:
    return request.client.host if request.client else 'unknown'


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle request validation errors (422 Unprocessable Entity).

    Sanitizes error details in production to avoid information disclosure.
    """
    environment = getattr(request.app.state, "environment", "production")

    logger.warning(
        f"Validation error: {request.method} {request.url.path} "
        f"from {_client(request)} - {len(exc.errors())} error(s)"
    )

    if environment == "development":
        error_details = exc.errors()
    else:
        error_details = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value")
            }
            for err in exc.errors()
        ]

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "error": "Validation Error",
            "message": "Invalid request parameters. Please check your input.",
            "errors": error_details,
        },
    )


async def analysis_exception_handler(request: Request, exc: AnalysisError):
    """
    Handle analysis errors raised by the library (422).

    Insufficient inputs are a client problem, so they are reported back
    with the analysis id rather than treated as server failures.
    """
    logger.warning(
        f"Analysis error: {request.method} {request.url.path} "
        f"from {_client(request)} - {type(exc).__name__}: {exc}"
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "error": "Insufficient Data" if isinstance(exc, InsufficientDataError) else "Analysis Error",
            "message": str(exc),
            "analysis_id": exc.analysis_id,
        },
    )


async def unknown_analysis_handler(request: Request, exc: UnknownAnalysisError):
    """Handle lookups of analyses that are not in the catalogue (404)."""
    logger.info(f"Unknown analysis requested: {exc.analysis_id}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "status": "error",
            "error": "Not Found",
            "message": str(exc),
        },
    )


async def statement_parse_handler(request: Request, exc: StatementParseError):
    """Handle unreadable uploads (422)."""
    logger.warning(f"Statement parse error from {_client(request)}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "error": "Unreadable Statement",
            "message": str(exc),
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions.

    Prevents stack traces from being exposed to clients in production.
    """
    environment = getattr(request.app.state, "environment", "production")

    logger.error(
        f"Unhandled exception: {request.method} {request.url.path} "
        f"from {_client(request)} - {type(exc).__name__}: {str(exc)}",
        exc_info=True,
    )

    request_id = getattr(request.state, "request_id", None)

    if environment == "development":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "error",
                "error": "Internal Server Error",
                "message": str(exc),
                "type": type(exc).__name__,
                "traceback": traceback.format_exc().split("\n"),
                "request_id": request_id,
            },
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "error": "Internal Server Error",
            "message": "An internal error occurred. Please try again later or contact support.",
            "request_id": request_id,
        },
    )


async def http_exception_handler(request: Request, exc):
    """
    Handle HTTP exceptions from FastAPI.
    """
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {request.method} {request.url.path} "
            f"from {_client(request)} - {exc.detail}"
        )
    else:
        logger.warning(
            f"HTTP {exc.status_code}: {request.method} {request.url.path} "
            f"from {_client(request)} - {exc.detail}"
        )

    if isinstance(exc.detail, dict):
        content = {
            "status": "error",
            **exc.detail,
        }
    else:
        content = {
            "status": "error",
            "message": str(exc.detail),
        }

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """
    Handle Pydantic validation errors.
    """
    logger.warning(
        f"Pydantic validation error: {request.method} {request.url.path} "
        f"from {_client(request)}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "error": "Validation Error",
            "message": "Data validation failed",
            "errors": exc.errors(),
        },
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    from starlette.exceptions import HTTPException

    app.add_exception_handler(RequestValidationError,
                              validation_exception_handler)
    app.add_exception_handler(
        ValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    # Library errors
    app.add_exception_handler(UnknownAnalysisError, unknown_analysis_handler)
    app.add_exception_handler(AnalysisError, analysis_exception_handler)
    app.add_exception_handler(StatementParseError, statement_parse_handler)

    # Catch-all for uncaught exceptions
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")
