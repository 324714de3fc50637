"""
Auth Schema

Portable DDL for the employee, session and security event tables. The
statements avoid backend-specific defaults so they run unchanged on
PostgreSQL and SQLite; every column value is supplied by the application.
"""

import logging
from typing import List

from .adapter import DatabaseAdapter

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS employees (
        id UUID PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        full_name VARCHAR(255) NOT NULL,
        role VARCHAR(32) NOT NULL,
        department VARCHAR(128),
        phone VARCHAR(64),
        is_active BOOLEAN NOT NULL,
        password_hash VARCHAR(128),
        password_salt VARCHAR(64),
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ,
        last_login_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS employee_sessions (
        token VARCHAR(128) PRIMARY KEY,
        employee_id UUID NOT NULL REFERENCES employees(id),
        issued_at TIMESTAMPTZ NOT NULL,
        expires_at TIMESTAMPTZ NOT NULL,
        revoked BOOLEAN NOT NULL,
        revoked_at TIMESTAMPTZ,
        ip_address VARCHAR(64),
        user_agent TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_employee_sessions_employee
        ON employee_sessions (employee_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS security_events (
        id UUID PRIMARY KEY,
        event_type VARCHAR(64) NOT NULL,
        employee_id UUID,
        metadata TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_security_events_type_created
        ON security_events (event_type, created_at)
    """,
]


async def apply_schema(db: DatabaseAdapter) -> None:
    """Create the auth tables if they do not exist yet."""
    for statement in SCHEMA_STATEMENTS:
        await db.execute(statement)
    logger.info("Auth schema applied (%d statements)", len(SCHEMA_STATEMENTS))
