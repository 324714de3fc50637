"""
Authentication & Authorization Module

Provides:
- Employee records and password hashing
- Login rate limiting
- Credential authentication
- Server-side sessions
- Security event auditing
- Route authorization
"""

from .permissions import (
    Role,
    Permission,
    ROLE_PERMISSIONS,
    is_valid_role,
    get_permissions_for_role,
    has_permission,
    roles_with_permission,
)
from .employee import (
    Employee,
    EmployeeCredentials,
    EmployeeStore,
    InMemoryEmployeeStore,
    SqlEmployeeStore,
    DuplicateEmployeeError,
    EmployeeNotFoundError,
    normalize_email,
    hash_password,
    verify_password,
)
from .rate_limit import (
    RateLimiter,
    RateLimitEntry,
    CounterStore,
    InMemoryCounterStore,
)
from .authenticator import Authenticator
from .session import (
    Session,
    ValidatedSession,
    SessionStore,
    InMemorySessionStore,
    SqlSessionStore,
    SessionManager,
    DEFAULT_SESSION_TTL,
)
from .security_events import (
    SecurityEvent,
    SecurityEventType,
    SecurityEventSink,
    InMemorySecurityEventSink,
    SqlSecurityEventSink,
    SecurityEventLog,
)
from .authorization import (
    AccessState,
    AccessDecision,
    AccessPolicy,
    RoleRule,
    RequestContext,
    Authorizer,
    default_policy,
    extract_token,
    client_address,
)
from .services import AuthServices, bootstrap_admin, reset_password

__all__ = [
    # Permissions
    "Role",
    "Permission",
    "ROLE_PERMISSIONS",
    "is_valid_role",
    "get_permissions_for_role",
    "has_permission",
    "roles_with_permission",
    # Employees
    "Employee",
    "EmployeeCredentials",
    "EmployeeStore",
    "InMemoryEmployeeStore",
    "SqlEmployeeStore",
    "DuplicateEmployeeError",
    "EmployeeNotFoundError",
    "normalize_email",
    "hash_password",
    "verify_password",
    # Rate limiting
    "RateLimiter",
    "RateLimitEntry",
    "CounterStore",
    "InMemoryCounterStore",
    # Authentication
    "Authenticator",
    # Sessions
    "Session",
    "ValidatedSession",
    "SessionStore",
    "InMemorySessionStore",
    "SqlSessionStore",
    "SessionManager",
    "DEFAULT_SESSION_TTL",
    # Security events
    "SecurityEvent",
    "SecurityEventType",
    "SecurityEventSink",
    "InMemorySecurityEventSink",
    "SqlSecurityEventSink",
    "SecurityEventLog",
    # Authorization
    "AccessState",
    "AccessDecision",
    "AccessPolicy",
    "RoleRule",
    "RequestContext",
    "Authorizer",
    "default_policy",
    "extract_token",
    "client_address",
    # Wiring
    "AuthServices",
    "bootstrap_admin",
    "reset_password",
]
