"""
Auth service wiring.

Bundles the stores and components used by the HTTP layer so an application
instance can be built against SQL storage or, in tests, in-memory storage.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID

from ...config import PortalConfig, config as default_config
from ..database import DatabaseAdapter
from .authenticator import Authenticator
from .authorization import Authorizer, default_policy
from .employee import (
    DuplicateEmployeeError,
    EmployeeNotFoundError,
    Employee,
    EmployeeStore,
    InMemoryEmployeeStore,
    SqlEmployeeStore,
)
from .permissions import Role
from .rate_limit import RateLimiter
from .security_events import (
    InMemorySecurityEventSink,
    SecurityEventLog,
    SecurityEventSink,
    SqlSecurityEventSink,
)
from .session import InMemorySessionStore, SessionManager, SessionStore, SqlSessionStore

logger = logging.getLogger(__name__)


@dataclass
class AuthServices:
    """Everything the auth endpoints and middleware need."""

    config: PortalConfig
    employees: EmployeeStore
    rate_limiter: RateLimiter
    authenticator: Authenticator
    sessions: SessionManager
    events: SecurityEventLog
    authorizer: Authorizer

    @classmethod
    def build(
        cls,
        employees: EmployeeStore,
        session_store: SessionStore,
        event_sink: SecurityEventSink,
        cfg: Optional[PortalConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> "AuthServices":
        cfg = cfg or default_config
        sessions = SessionManager(
            session_store,
            employees,
            ttl=timedelta(seconds=cfg.session_ttl_seconds),
        )
        events = SecurityEventLog(event_sink, timeout_seconds=cfg.SECURITY_EVENT_TIMEOUT_SECONDS)
        policy = default_policy(
            login_path=cfg.LOGIN_PATH,
            dashboard_path=cfg.DASHBOARD_PATH,
            cookie_name=cfg.SESSION_COOKIE_NAME,
        )
        return cls(
            config=cfg,
            employees=employees,
            rate_limiter=rate_limiter or RateLimiter(),
            authenticator=Authenticator(employees),
            sessions=sessions,
            events=events,
            authorizer=Authorizer(sessions, policy, events),
        )

    @classmethod
    def in_memory(cls, cfg: Optional[PortalConfig] = None) -> "AuthServices":
        return cls.build(
            InMemoryEmployeeStore(),
            InMemorySessionStore(),
            InMemorySecurityEventSink(),
            cfg,
        )

    @classmethod
    def sql(
        cls,
        db: Optional[DatabaseAdapter] = None,
        cfg: Optional[PortalConfig] = None,
    ) -> "AuthServices":
        """Stores backed by the database (the global adapter when db is None)."""
        return cls.build(
            SqlEmployeeStore(db),
            SqlSessionStore(db),
            SqlSecurityEventSink(db),
            cfg,
        )


async def bootstrap_admin(
    employees: EmployeeStore,
    email: str,
    password: str,
    name: str = "Administrator",
) -> Optional[Employee]:
    """
    Create an administrator unless an employee with that email exists.

    Returns:
        The new employee, or None if the email was already taken
    """
    if await employees.get_by_email(email) is not None:
        logger.info("Bootstrap administrator already present")
        return None

    try:
        employee = await employees.create_employee(
            email=email,
            password=password,
            name=name,
            role=Role.ADMIN.value,
        )
    except DuplicateEmployeeError:
        return None

    logger.info(f"Bootstrap administrator created: {employee.id}")
    return employee


async def reset_password(
    employees: EmployeeStore,
    sessions: SessionManager,
    employee_id: UUID,
    new_password: str,
) -> int:
    """
    Set a new password and end every session issued under the old one.

    Returns:
        Number of sessions revoked

    Raises:
        EmployeeNotFoundError: If the employee does not exist
    """
    if not await employees.set_password(employee_id, new_password):
        raise EmployeeNotFoundError(employee_id)

    revoked = await sessions.revoke_all_sessions(employee_id)
    logger.info(f"Password reset for {employee_id}, {revoked} session(s) revoked")
    return revoked
