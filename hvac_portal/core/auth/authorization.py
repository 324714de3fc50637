"""
Route Authorization

Framework-independent access decision for a single request:

    UNCHECKED
      -> PUBLIC_ALLOWED   path is public or not protected
      -> SESSION_MISSING  no token on the request
      -> SESSION_INVALID  unknown, expired or revoked token, inactive employee,
                          or any internal failure while resolving the session
      -> ROLE_DENIED      authenticated, but the role is not allowed on the path
      -> ALLOWED          authenticated and permitted

The HTTP layer turns the terminal state into a pass-through, a redirect or a
JSON error.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Protocol, Tuple
from urllib.parse import urlencode

from .permissions import Permission, roles_with_permission
from .rate_limit import UNKNOWN_CLIENT
from .security_events import SecurityEventLog, SecurityEventType
from .session import SessionManager, ValidatedSession

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_ROUTES: Tuple[str, ...] = (
    "/",
    "/login",
    "/signup",
    "/admin/login",
    "/api/contact",
    "/api/auth/login",
    "/api/auth/logout",
    "/api/auth/verify",
    "/health",
)

DEFAULT_PROTECTED_PREFIXES: Tuple[str, ...] = (
    "/admin",
    "/api/admin",
)


class AccessState(str, Enum):
    """States of the per-request authorization state machine."""

    UNCHECKED = "unchecked"
    PUBLIC_ALLOWED = "public_allowed"
    SESSION_MISSING = "session_missing"
    SESSION_INVALID = "session_invalid"
    ROLE_DENIED = "role_denied"
    ALLOWED = "allowed"


class RequestContext(Protocol):
    """The parts of an incoming request the authorizer needs."""

    @property
    def path(self) -> str: ...

    def header(self, name: str) -> Optional[str]: ...

    def cookie(self, name: str) -> Optional[str]: ...


@dataclass(frozen=True)
class RoleRule:
    """Paths under prefix additionally require one of roles."""

    prefix: str
    roles: FrozenSet[str]


def path_matches(path: str, route: str) -> bool:
    """Exact match, or route is a segment prefix of path ("/" only matches exactly)."""
    if path == route:
        return True
    if route == "/":
        return False
    return path.startswith(route.rstrip("/") + "/")


@dataclass(frozen=True)
class AccessPolicy:
    """Route-to-role policy."""

    public_routes: Tuple[str, ...] = DEFAULT_PUBLIC_ROUTES
    protected_prefixes: Tuple[str, ...] = DEFAULT_PROTECTED_PREFIXES
    role_rules: Tuple[RoleRule, ...] = ()
    login_path: str = "/admin/login"
    dashboard_path: str = "/admin/dashboard"
    cookie_name: str = "auth_token"

    def is_public(self, path: str) -> bool:
        return any(path_matches(path, route) for route in self.public_routes)

    def is_protected(self, path: str) -> bool:
        return any(path_matches(path, prefix) for prefix in self.protected_prefixes)

    def required_roles(self, path: str) -> Optional[FrozenSet[str]]:
        """Roles required by the most specific matching rule, None when unrestricted."""
        matching = [rule for rule in self.role_rules if path_matches(path, rule.prefix)]
        if not matching:
            return None
        return max(matching, key=lambda rule: len(rule.prefix)).roles

    def login_redirect(self, **params: str) -> str:
        return f"{self.login_path}?{urlencode(params)}"

    def dashboard_redirect(self, **params: str) -> str:
        return f"{self.dashboard_path}?{urlencode(params)}"


def default_role_rules() -> Tuple[RoleRule, ...]:
    employees = roles_with_permission(Permission.EMPLOYEES_READ)
    settings = roles_with_permission(Permission.SETTINGS_MANAGE)
    reports = roles_with_permission(Permission.REPORTS_READ)
    return (
        RoleRule("/admin/employees", employees),
        RoleRule("/api/admin/employees", employees),
        RoleRule("/admin/settings", settings),
        RoleRule("/admin/reports", reports),
    )


def default_policy(
    login_path: str = "/admin/login",
    dashboard_path: str = "/admin/dashboard",
    cookie_name: str = "auth_token",
) -> AccessPolicy:
    return AccessPolicy(
        role_rules=default_role_rules(),
        login_path=login_path,
        dashboard_path=dashboard_path,
        cookie_name=cookie_name,
    )


def extract_token(
    request: RequestContext,
    cookie_name: str,
    prefer_header: bool = False,
) -> Optional[str]:
    """
    Session token from the cookie or an Authorization bearer header.

    Args:
        request: The incoming request
        cookie_name: Name of the session cookie
        prefer_header: Consult the bearer header before the cookie

    Returns:
        The token, or None when neither source carries one
    """
    bearer = None
    auth_header = request.header("authorization") or ""
    if auth_header.startswith("Bearer "):
        bearer = auth_header[len("Bearer "):].strip() or None

    cookie = request.cookie(cookie_name) or None
    if prefer_header:
        return bearer or cookie
    return cookie or bearer


@dataclass(frozen=True)
class AccessDecision:
    """Terminal state of the authorization state machine for one request."""

    state: AccessState
    reason: str
    redirect_to: Optional[str] = None
    session: Optional[ValidatedSession] = field(default=None, repr=False)

    @property
    def allowed(self) -> bool:
        return self.state in (AccessState.PUBLIC_ALLOWED, AccessState.ALLOWED)


class Authorizer:
    """
    Resolves the caller's session and role and decides whether a request may proceed.

    Failures while resolving the session fail closed (SESSION_INVALID).
    """

    def __init__(
        self,
        sessions: SessionManager,
        policy: Optional[AccessPolicy] = None,
        events: Optional[SecurityEventLog] = None,
    ):
        self.sessions = sessions
        self.policy = policy or default_policy()
        self.events = events

    async def authorize(self, request: RequestContext) -> AccessDecision:
        path = request.path
        policy = self.policy

        if policy.is_public(path):
            return AccessDecision(AccessState.PUBLIC_ALLOWED, "public_route")

        if not policy.is_protected(path):
            return AccessDecision(AccessState.PUBLIC_ALLOWED, "unprotected_route")

        token = extract_token(request, policy.cookie_name)
        if not token:
            return AccessDecision(
                AccessState.SESSION_MISSING,
                "no_session_token",
                redirect_to=policy.login_redirect(redirect=path),
            )

        try:
            validated = await self.sessions.validate_session(token)
        except Exception:
            logger.exception("Session resolution failed", extra={"path": path})
            return AccessDecision(
                AccessState.SESSION_INVALID,
                "auth_error",
                redirect_to=policy.login_redirect(error="auth_error"),
            )

        if validated is None:
            return AccessDecision(
                AccessState.SESSION_INVALID,
                "invalid_session",
                redirect_to=policy.login_redirect(error="session_expired"),
            )

        required = policy.required_roles(path)
        if required is not None and validated.employee.role not in required:
            await self._log_denial(request, validated, required)
            return AccessDecision(
                AccessState.ROLE_DENIED,
                "role_not_permitted",
                redirect_to=policy.dashboard_redirect(error="unauthorized"),
                session=validated,
            )

        return AccessDecision(AccessState.ALLOWED, "authenticated", session=validated)

    async def _log_denial(
        self,
        request: RequestContext,
        validated: ValidatedSession,
        required: FrozenSet[str],
    ) -> None:
        if self.events is None:
            return
        await self.events.log(
            SecurityEventType.UNAUTHORIZED_ACCESS_ATTEMPT,
            {
                "path": request.path,
                "role": validated.employee.role,
                "required_roles": sorted(required),
                "ip": client_address(request),
                "user_agent": request.header("user-agent"),
            },
            validated.employee.id,
        )


def client_address(request: RequestContext) -> str:
    """Client address from proxy headers, UNKNOWN_CLIENT when absent."""
    forwarded = request.header("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or UNKNOWN_CLIENT
    return request.header("x-real-ip") or UNKNOWN_CLIENT
