"""
Security Event Log

Append-only audit trail of authentication-relevant events. Writes are
fire-and-forget from the caller's point of view: a failing or slow sink is
logged and never turns a successful auth flow into a failure.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from ..database import DatabaseAdapter, get_database

logger = logging.getLogger(__name__)

# Audit mirror consumed by log shipping
security_logger = logging.getLogger("hvac_portal.security")


def _utcnow() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class SecurityEventType(str, Enum):
    """Security event types."""

    FAILED_LOGIN_ATTEMPT = "failed_login_attempt"
    SUCCESSFUL_LOGIN = "successful_login"
    USER_LOGOUT = "user_logout"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UNAUTHORIZED_ACCESS_ATTEMPT = "unauthorized_access_attempt"


class SecurityEvent(BaseModel):
    """Immutable audit record."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    event_type: SecurityEventType
    employee_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)


class SecurityEventSink(Protocol):
    """Destination for security events."""

    async def append(self, event: SecurityEvent) -> None: ...


class InMemorySecurityEventSink:
    """Keeps events in a list; used by tests and development setups."""

    def __init__(self):
        self.events: List[SecurityEvent] = []

    async def append(self, event: SecurityEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: SecurityEventType) -> List[SecurityEvent]:
        return [e for e in self.events if e.event_type == event_type]


class SqlSecurityEventSink:
    """Appends events to the `security_events` table."""

    def __init__(self, db: Optional[DatabaseAdapter] = None):
        self._db = db

    async def _get_db(self) -> DatabaseAdapter:
        if self._db is None:
            self._db = await get_database()
        return self._db

    async def append(self, event: SecurityEvent) -> None:
        db = await self._get_db()
        await db.execute(
            """
            INSERT INTO security_events (id, event_type, employee_id, metadata, created_at)
            VALUES ($1, $2, $3, $4, $5)
            """,
            event.id,
            event.event_type.value,
            event.employee_id,
            json.dumps(event.metadata, default=str),
            event.created_at
        )


class SecurityEventLog:
    """
    Records security events.

    Usage:
        events = SecurityEventLog(SqlSecurityEventSink())
        await events.log(SecurityEventType.SUCCESSFUL_LOGIN, {"ip": ip}, employee.id)
    """

    def __init__(self, sink: SecurityEventSink, timeout_seconds: float = 2.0):
        self.sink = sink
        self.timeout_seconds = timeout_seconds

    async def log(
        self,
        event_type: SecurityEventType,
        metadata: Optional[Dict[str, Any]] = None,
        employee_id: Optional[UUID] = None
    ) -> None:
        """
        Append an event. Never raises (cancellation excepted).

        Args:
            event_type: What happened
            metadata: Context such as client address, user agent, attempted email
            employee_id: Associated employee, None for pre-auth failures
        """
        try:
            event = SecurityEvent(
                event_type=event_type,
                employee_id=employee_id,
                metadata=dict(metadata or {}),
            )
        except Exception:
            logger.exception(f"Invalid security event {event_type!r}")
            return

        security_logger.info(
            f"Security event: {event.event_type.value}",
            extra={
                "event_id": str(event.id),
                "event_type": event.event_type.value,
                "employee_id": str(employee_id) if employee_id else None,
                "event_metadata": event.metadata,
            }
        )

        try:
            await asyncio.wait_for(self.sink.append(event), timeout=self.timeout_seconds)
        except Exception as e:
            logger.error(
                f"Failed to record security event {event.event_type.value}: {type(e).__name__}: {e}",
                extra={"event_id": str(event.id)}
            )
