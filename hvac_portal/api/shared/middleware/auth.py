"""
Authorization Middleware

Runs the route authorizer for every request and turns its decision into a
pass-through, a redirect (browser routes) or a JSON error (API routes).
The resolved employee and session are placed on request.state.
"""

import logging
from functools import wraps
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ....core.auth import AccessDecision, AccessState, Employee, Permission, has_permission
from ..error_codes import ErrorCode
from ..exceptions import ForbiddenError, UnauthorizedError
from ..responses import ErrorBody
from ..security import StarletteRequestContext
from .trace import request_trace_id

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"


def is_api_path(path: str) -> bool:
    """API callers get JSON errors instead of redirects."""
    return path.startswith(API_PREFIX)


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Lets public and unprotected paths through without a session lookup
    2. Validates the session token (cookie, then bearer header)
    3. Enforces role rules on role-gated paths
    4. Loads the employee and session into request.state
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.employee = None
        request.state.session = None

        authorizer = request.app.state.auth.authorizer
        decision = await authorizer.authorize(StarletteRequestContext(request))

        if decision.allowed:
            if decision.session is not None:
                request.state.employee = decision.session.employee
                request.state.session = decision.session.session
            return await call_next(request)

        logger.info(
            f"Access denied: {decision.state.value} ({decision.reason})",
            extra={"path": request.url.path, "access_state": decision.state.value}
        )

        if is_api_path(request.url.path):
            return _json_denial(request, decision)
        return RedirectResponse(decision.redirect_to, status_code=302)


def _json_denial(request: Request, decision: AccessDecision) -> JSONResponse:
    if decision.state == AccessState.ROLE_DENIED:
        status_code, code, message = 403, ErrorCode.FORBIDDEN, "Insufficient permissions"
    else:
        status_code, code, message = 401, ErrorCode.UNAUTHORIZED, "Authentication required"

    body = ErrorBody(code=code.value, message=message, trace_id=request_trace_id(request))
    return JSONResponse(status_code=status_code, content={"error": body.model_dump(mode="json")})


def get_current_employee(request: Request) -> Optional[Employee]:
    """
    Get the current employee from request state.

    Args:
        request: FastAPI request

    Returns:
        Employee if authenticated, None otherwise
    """
    return getattr(request.state, "employee", None)


def require_employee(request: Request) -> Employee:
    """
    Require an authenticated employee.

    Raises:
        UnauthorizedError: If no valid session was attached to the request
    """
    employee = get_current_employee(request)
    if employee is None:
        raise UnauthorizedError()
    return employee


def require_permission(permission: Permission):
    """
    Decorator to require a permission for an endpoint.

    Usage:
        @router.post("/employees")
        @require_permission(Permission.EMPLOYEES_WRITE)
        async def create_employee(request: Request, body: CreateEmployeeRequest):
            ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get("request")
            if request is None:
                for arg in args:
                    if isinstance(arg, Request):
                        request = arg
                        break

            if request is None:
                raise RuntimeError(f"{func.__name__} must accept a Request to use require_permission")

            employee = require_employee(request)
            if not has_permission(employee.role, permission):
                raise ForbiddenError(f"Permission denied: {permission.value} required")

            return await func(*args, **kwargs)
        return wrapper
    return decorator
