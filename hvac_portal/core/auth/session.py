"""
Session Management

Handles session creation, validation, and revocation.

Sessions are opaque random tokens stored server-side. The employee's role is
re-read from the employee store on every validation rather than cached in
the session, so role changes and deactivations take effect on the next
request without a re-login.
"""

import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timezone, timedelta
from typing import Any, Callable, Dict, Optional, Protocol
from uuid import UUID

from ..database import DatabaseAdapter, get_database, affected_rows, row_uuid, row_datetime, row_bool
from ..observability import create_span
from .employee import Employee, EmployeeStore

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(days=30)
TOKEN_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Session:
    """Session record stored server-side."""

    token: str
    employee_id: UUID
    issued_at: datetime
    expires_at: datetime
    revoked: bool = False
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the session has expired."""
        return (now or _utcnow()) >= self.expires_at

    @property
    def max_age_seconds(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())

    def to_dict(self) -> dict:
        """Convert session data to dictionary (without the token)."""
        return {
            "employee_id": str(self.employee_id),
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "revoked": self.revoked,
            "ip_address": self.ip_address,
        }


@dataclass(frozen=True)
class ValidatedSession:
    """A live session together with the freshly resolved employee."""

    session: Session
    employee: Employee

    @property
    def token(self) -> str:
        return self.session.token

    @property
    def expires_at(self) -> datetime:
        return self.session.expires_at


class SessionStore(Protocol):
    """Durable storage for session records."""

    async def create(self, session: Session) -> None: ...

    async def get(self, token: str) -> Optional[Session]: ...

    async def revoke(self, token: str) -> bool: ...

    async def revoke_all_for_employee(self, employee_id: UUID) -> int: ...

    async def delete_expired(self, now: datetime) -> int: ...


class InMemorySessionStore:
    """Process-local session store."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    async def create(self, session: Session) -> None:
        self._sessions[session.token] = session

    async def get(self, token: str) -> Optional[Session]:
        return self._sessions.get(token)

    async def revoke(self, token: str) -> bool:
        session = self._sessions.get(token)
        if session is None or session.revoked:
            return False
        self._sessions[token] = replace(session, revoked=True)
        return True

    async def revoke_all_for_employee(self, employee_id: UUID) -> int:
        tokens = [
            token for token, s in self._sessions.items()
            if s.employee_id == employee_id and not s.revoked
        ]
        for token in tokens:
            self._sessions[token] = replace(self._sessions[token], revoked=True)
        return len(tokens)

    async def delete_expired(self, now: datetime) -> int:
        expired = [token for token, s in self._sessions.items() if s.is_expired(now)]
        for token in expired:
            del self._sessions[token]
        return len(expired)


class SqlSessionStore:
    """Session store backed by the `employee_sessions` table."""

    def __init__(self, db: Optional[DatabaseAdapter] = None):
        self._db = db

    async def _get_db(self) -> DatabaseAdapter:
        if self._db is None:
            self._db = await get_database()
        return self._db

    async def create(self, session: Session) -> None:
        db = await self._get_db()
        await db.execute(
            """
            INSERT INTO employee_sessions (token, employee_id, issued_at, expires_at,
                                           revoked, ip_address, user_agent)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            session.token,
            session.employee_id,
            session.issued_at,
            session.expires_at,
            session.revoked,
            session.ip_address,
            session.user_agent
        )

    async def get(self, token: str) -> Optional[Session]:
        db = await self._get_db()
        row = await db.fetchrow(
            """
            SELECT token, employee_id, issued_at, expires_at, revoked, ip_address, user_agent
            FROM employee_sessions
            WHERE token = $1
            """,
            token
        )
        return _row_to_session(row) if row else None

    async def revoke(self, token: str) -> bool:
        db = await self._get_db()
        status = await db.execute(
            """
            UPDATE employee_sessions
            SET revoked = $1, revoked_at = $2
            WHERE token = $3 AND revoked = $4
            """,
            True,
            _utcnow(),
            token,
            False
        )
        return affected_rows(status) > 0

    async def revoke_all_for_employee(self, employee_id: UUID) -> int:
        db = await self._get_db()
        status = await db.execute(
            """
            UPDATE employee_sessions
            SET revoked = $1, revoked_at = $2
            WHERE employee_id = $3 AND revoked = $4
            """,
            True,
            _utcnow(),
            employee_id,
            False
        )
        return affected_rows(status)

    async def delete_expired(self, now: datetime) -> int:
        db = await self._get_db()
        status = await db.execute(
            "DELETE FROM employee_sessions WHERE expires_at <= $1",
            now
        )
        return affected_rows(status)


class SessionManager:
    """
    Issues, validates and revokes employee sessions.

    Usage:
        manager = SessionManager(SqlSessionStore(), SqlEmployeeStore())
        session = await manager.create_session(employee)
        validated = await manager.validate_session(session.token)
        await manager.revoke_session(session.token)
    """

    def __init__(
        self,
        store: SessionStore,
        employees: EmployeeStore,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.employees = employees
        self.ttl = ttl
        self._clock = clock

    async def create_session(
        self,
        employee: Employee,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Session:
        """
        Create a new session for an employee.

        The store insert is the commit point: no record exists until the token
        has been generated, and the token is only handed out after the insert.

        Args:
            employee: The authenticated employee
            ip_address: Client IP address (for audit)
            user_agent: Client user agent (for audit)

        Returns:
            Session whose token is to be set as cookie
        """
        now = self._clock()
        session = Session(
            token=secrets.token_urlsafe(TOKEN_BYTES),
            employee_id=employee.id,
            issued_at=now,
            expires_at=now + self.ttl,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        with create_span("auth.create_session", {"employee.id": str(employee.id)}):
            await self.store.create(session)

        logger.info("Session issued", extra={"employee_id": str(employee.id)})
        return session

    async def validate_session(self, token: str) -> Optional[ValidatedSession]:
        """
        Validate a session token.

        Args:
            token: The session token from cookie or Authorization header

        Returns:
            ValidatedSession if valid, None if unknown, revoked, expired or the
            employee is missing or inactive
        """
        if not token:
            return None

        with create_span("auth.validate_session") as span:
            session = await self.store.get(token)

            if session is None or session.revoked:
                span.set_attribute("auth.outcome", "unknown_or_revoked")
                return None

            if session.is_expired(self._clock()):
                span.set_attribute("auth.outcome", "expired")
                return None

            employee = await self.employees.get_by_id(session.employee_id)
            if employee is None or not employee.is_active:
                span.set_attribute("auth.outcome", "inactive_employee")
                return None

            span.set_attribute("auth.outcome", "valid")
            return ValidatedSession(session=session, employee=employee)

    async def revoke_session(self, token: str) -> None:
        """
        Revoke (logout) a session.

        Revoking an unknown or already revoked token is a no-op.
        """
        if not token:
            return
        if await self.store.revoke(token):
            logger.info("Session revoked")

    async def revoke_all_sessions(self, employee_id: UUID) -> int:
        """
        Revoke every session of an employee (logout everywhere).

        Returns:
            Number of sessions revoked
        """
        count = await self.store.revoke_all_for_employee(employee_id)
        if count:
            logger.info(
                f"Revoked {count} session(s)",
                extra={"employee_id": str(employee_id)}
            )
        return count

    async def cleanup_expired_sessions(self) -> int:
        """
        Remove all expired sessions.

        Returns:
            Number of sessions removed
        """
        return await self.store.delete_expired(self._clock())


def _row_to_session(row: Dict[str, Any]) -> Session:
    return Session(
        token=row["token"],
        employee_id=row_uuid(row["employee_id"]),
        issued_at=row_datetime(row["issued_at"]),
        expires_at=row_datetime(row["expires_at"]),
        revoked=row_bool(row["revoked"]),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
    )
