"""
Shared API components: error taxonomy, response models, middleware and routers.
"""

from .error_codes import ErrorCode, get_status_code
from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    ConflictError,
    UnauthorizedError,
    ForbiddenError,
    RateLimitExceededError,
)
from .responses import ErrorBody, ErrorDetail, ErrorResponse
from .security import SecurityMiddleware, get_client_ip

__all__ = [
    "ErrorCode",
    "get_status_code",
    "APIException",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "UnauthorizedError",
    "ForbiddenError",
    "RateLimitExceededError",
    "ErrorBody",
    "ErrorDetail",
    "ErrorResponse",
    "SecurityMiddleware",
    "get_client_ip",
]
