"""
API Exception Classes

Custom exceptions that map to standard error responses.
"""

from typing import Dict, Optional, List

from .error_codes import ErrorCode, get_status_code
from .responses import ErrorDetail


class APIException(Exception):
    """
    Base exception for API errors.

    The error handler catches these and returns standardized error responses.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[List[ErrorDetail]] = None,
        trace_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        self.trace_id = trace_id
        self.headers = headers
        self.status_code = get_status_code(code)
        super().__init__(message)


class ValidationError(APIException):
    """
    Validation error for missing or malformed request data.

    HTTP Status: 400
    """

    def __init__(
        self,
        message: str,
        details: Optional[List[ErrorDetail]] = None,
        trace_id: Optional[str] = None
    ):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
            trace_id=trace_id
        )


class NotFoundError(APIException):
    """
    Resource not found error.

    HTTP Status: 404
    """

    def __init__(
        self,
        resource: str,
        resource_id: Optional[str] = None,
        trace_id: Optional[str] = None
    ):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' not found"

        code_map = {
            "Employee": ErrorCode.EMPLOYEE_NOT_FOUND,
        }
        code = code_map.get(resource, ErrorCode.NOT_FOUND)

        super().__init__(code=code, message=message, trace_id=trace_id)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(APIException):
    """
    Conflict error (e.g., duplicate email).

    HTTP Status: 409
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFLICT,
        trace_id: Optional[str] = None
    ):
        super().__init__(code=code, message=message, trace_id=trace_id)


class UnauthorizedError(APIException):
    """
    Authentication failure.

    Bad credentials, inactive employees and missing or invalid sessions all
    share this error so callers cannot tell them apart.

    HTTP Status: 401
    """

    def __init__(
        self,
        message: str = "Authentication required",
        trace_id: Optional[str] = None
    ):
        super().__init__(
            code=ErrorCode.UNAUTHORIZED,
            message=message,
            trace_id=trace_id
        )


class ForbiddenError(APIException):
    """
    Permission denied error.

    HTTP Status: 403
    """

    def __init__(
        self,
        message: str = "Permission denied",
        trace_id: Optional[str] = None
    ):
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message=message,
            trace_id=trace_id
        )


class RateLimitExceededError(APIException):
    """
    Too many attempts from one client.

    HTTP Status: 429
    """

    def __init__(
        self,
        retry_after: int,
        message: str = "Too many login attempts. Please try again later.",
        trace_id: Optional[str] = None
    ):
        super().__init__(
            code=ErrorCode.RATE_LIMITED,
            message=message,
            trace_id=trace_id,
            headers={"Retry-After": str(retry_after)}
        )
        self.retry_after = retry_after

