"""
Global Error Handler

Catches exceptions and returns standardized error responses. Nothing but
the generic message ever reaches the client for unexpected failures.
"""

import logging
import traceback

import aiosqlite
import asyncpg
from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from ..exceptions import APIException, ValidationError
from ..responses import ErrorBody, ErrorDetail
from ..error_codes import ErrorCode, is_client_error
from .trace import request_trace_id

logger = logging.getLogger(__name__)


def _error_response(status_code: int, body: ErrorBody, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": body.model_dump(mode="json")},
        headers=headers
    )


def register_error_handlers(app: FastAPI):
    """
    Register all error handlers on the FastAPI app.

    This function sets up exception handlers for:
    - APIException (custom API errors)
    - RequestValidationError (FastAPI validation)
    - Database driver errors
    - Generic Exception (catch-all for unexpected errors)
    """

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        """Handle custom API exceptions."""
        trace_id = exc.trace_id or request_trace_id(request)

        log = logger.warning if is_client_error(exc.code) else logger.error
        log(
            f"API Error: {exc.code.value} - {exc.message}",
            extra={
                "trace_id": trace_id,
                "error_code": exc.code.value,
                "path": request.url.path
            }
        )

        error_body = ErrorBody(
            code=exc.code.value,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id
        )
        return _error_response(exc.status_code, error_body, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI validation errors."""
        trace_id = request_trace_id(request)

        details = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            details.append(ErrorDetail(
                field=field,
                message=error["msg"],
                code=error["type"]
            ))

        return await api_exception_handler(
            request,
            ValidationError("Request validation failed", details=details, trace_id=trace_id)
        )

    async def database_exception_handler(request: Request, exc: Exception):
        """Handle database driver errors without exposing driver details."""
        trace_id = request_trace_id(request)

        logger.error(
            f"Database Error: {type(exc).__name__}: {exc}",
            extra={
                "trace_id": trace_id,
                "path": request.url.path,
                "traceback": traceback.format_exc()
            }
        )

        error_body = ErrorBody(
            code=ErrorCode.DATABASE_ERROR.value,
            message="A database error occurred",
            trace_id=trace_id
        )
        return _error_response(500, error_body)

    app.add_exception_handler(asyncpg.PostgresError, database_exception_handler)
    app.add_exception_handler(aiosqlite.Error, database_exception_handler)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        trace_id = request_trace_id(request)

        logger.error(
            f"Unhandled Exception: {type(exc).__name__}: {exc}",
            extra={
                "trace_id": trace_id,
                "path": request.url.path,
                "traceback": traceback.format_exc()
            }
        )

        error_body = ErrorBody(
            code=ErrorCode.INTERNAL_ERROR.value,
            message="An internal error occurred",
            trace_id=trace_id
        )
        return _error_response(500, error_body)
