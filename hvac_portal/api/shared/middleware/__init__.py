"""
Shared API Middleware

Provides cross-cutting concerns for all API endpoints:
- Error handling with standardized responses
- Trace ID propagation for observability
- Session validation and route authorization
"""

from .error_handler import register_error_handlers
from .trace import (
    TraceMiddleware,
    get_trace_id,
    request_trace_id,
)
from .auth import (
    AuthorizationMiddleware,
    get_current_employee,
    require_employee,
    require_permission,
    is_api_path,
)

__all__ = [
    # Error handling
    "register_error_handlers",
    # Trace
    "TraceMiddleware",
    "get_trace_id",
    "request_trace_id",
    # Auth
    "AuthorizationMiddleware",
    "get_current_employee",
    "require_employee",
    "require_permission",
    "is_api_path",
]
