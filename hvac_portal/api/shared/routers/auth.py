"""
Authentication API Endpoints

Provides login, logout, and session verification.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field, field_validator

from ....core.auth import (
    AuthServices,
    Employee,
    SecurityEventType,
    ValidatedSession,
    extract_token,
)
from ..exceptions import RateLimitExceededError, UnauthorizedError
from ..security import StarletteRequestContext, get_client_ip
from ..middleware.auth import get_current_employee

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password"


class LoginRequest(BaseModel):
    """Login request body."""
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=1024)

    @field_validator("email")
    @classmethod
    def email_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Email is required")
        return value


class UserResponse(BaseModel):
    """Identity returned to authenticated callers."""
    id: str
    email: str
    role: str
    name: str


class VerifiedUserResponse(UserResponse):
    """Identity plus last login time."""
    last_login: Optional[datetime] = None


class LoginResponse(BaseModel):
    """Login response model."""
    success: bool
    user: UserResponse
    token: str


class LogoutResponse(BaseModel):
    """Logout response model."""
    success: bool
    message: str


class VerifyResponse(BaseModel):
    """Session verification response model."""
    success: bool
    user: VerifiedUserResponse
    expires: datetime


def get_services(request: Request) -> AuthServices:
    """Auth services attached to the application."""
    return request.app.state.auth


async def enforce_login_rate_limit(request: Request) -> str:
    """
    Count a login attempt for the calling client.

    Runs before the body is interpreted so throttled clients never reach
    the authenticator.

    Returns:
        The client address the attempt was counted against

    Raises:
        RateLimitExceededError: When the client has used up its window
    """
    services = get_services(request)
    cfg = services.config
    client_ip = get_client_ip(request, cfg.trusted_proxies)

    allowed = await services.rate_limiter.check(
        client_ip,
        cfg.LOGIN_RATE_LIMIT_MAX_ATTEMPTS,
        cfg.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        await services.events.log(
            SecurityEventType.RATE_LIMIT_EXCEEDED,
            {"ip": client_ip, "user_agent": request.headers.get("user-agent")}
        )
        retry_after = await services.rate_limiter.retry_after(
            client_ip, cfg.LOGIN_RATE_LIMIT_WINDOW_SECONDS
        )
        raise RateLimitExceededError(retry_after=retry_after)

    return client_ip


def _set_session_cookie(response: Response, services: AuthServices, token: str, max_age: int):
    cfg = services.config
    response.set_cookie(
        key=cfg.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=cfg.cookie_secure,
        samesite="strict",
        max_age=max_age,
        path="/"
    )


def _user_response(employee: Employee) -> UserResponse:
    return UserResponse(**employee.identity())


async def _discard_session(services: AuthServices, token: str) -> None:
    try:
        await services.sessions.revoke_session(token)
    except Exception as e:
        logger.error(f"Failed to discard session after aborted login: {type(e).__name__}: {e}")


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    client_ip: str = Depends(enforce_login_rate_limit),
):
    """
    Login with email and password.

    Returns the employee identity and session token, and sets the session cookie.
    """
    services = get_services(request)
    user_agent = request.headers.get("user-agent")

    employee = await services.authenticator.authenticate(body.email, body.password)

    if employee is None:
        await services.events.log(
            SecurityEventType.FAILED_LOGIN_ATTEMPT,
            {"email": body.email, "ip": client_ip, "user_agent": user_agent}
        )
        raise UnauthorizedError(INVALID_CREDENTIALS)

    session = await services.sessions.create_session(
        employee,
        ip_address=client_ip,
        user_agent=user_agent
    )

    # An aborted request must not leave a live session nobody received
    try:
        await services.employees.record_login(employee.id, session.issued_at)
        await services.events.log(
            SecurityEventType.SUCCESSFUL_LOGIN,
            {"email": employee.email, "role": employee.role, "ip": client_ip, "user_agent": user_agent},
            employee.id
        )
    except BaseException:
        await _discard_session(services, session.token)
        raise

    _set_session_cookie(response, services, session.token, session.max_age_seconds)

    logger.info(f"Employee {employee.id} logged in", extra={"employee_id": str(employee.id)})

    return LoginResponse(
        success=True,
        user=_user_response(employee),
        token=session.token
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(request: Request, response: Response):
    """
    Logout and revoke the session.

    Always succeeds for the caller; unknown or missing tokens are ignored.
    """
    services = get_services(request)
    token = extract_token(
        StarletteRequestContext(request),
        services.config.SESSION_COOKIE_NAME,
        prefer_header=True
    )

    if token:
        validated = await services.sessions.validate_session(token)
        if validated is not None:
            await services.events.log(
                SecurityEventType.USER_LOGOUT,
                {
                    "email": validated.employee.email,
                    "ip": get_client_ip(request, services.config.trusted_proxies),
                    "user_agent": request.headers.get("user-agent"),
                },
                validated.employee.id
            )
        await services.sessions.revoke_session(token)

    _set_session_cookie(response, services, "", 0)

    return LogoutResponse(success=True, message="Logged out successfully")


async def _resolve_session(request: Request, prefer_header: bool) -> ValidatedSession:
    services = get_services(request)
    token = extract_token(
        StarletteRequestContext(request),
        services.config.SESSION_COOKIE_NAME,
        prefer_header=prefer_header
    )
    if not token:
        raise UnauthorizedError("No authentication token provided")

    validated = await services.sessions.validate_session(token)
    if validated is None:
        raise UnauthorizedError("Invalid or expired token")
    return validated


@router.get("/verify", response_model=VerifyResponse)
async def verify(request: Request):
    """
    Verify a session token from the Authorization header or cookie.
    """
    validated = await _resolve_session(request, prefer_header=True)
    employee = validated.employee

    return VerifyResponse(
        success=True,
        user=VerifiedUserResponse(**employee.identity(), last_login=employee.last_login_at),
        expires=validated.expires_at
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user(request: Request):
    """
    Get the current authenticated employee.
    """
    employee = get_current_employee(request)
    if employee is None:
        employee = (await _resolve_session(request, prefer_header=False)).employee

    return _user_response(employee)
