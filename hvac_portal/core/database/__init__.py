"""
Database abstraction layer supporting SQLite and PostgreSQL.

Usage:
    from hvac_portal.core.database import get_database

    db = await get_database()
    row = await db.fetchrow("SELECT * FROM employees WHERE id = $1", employee_id)
"""

from .adapter import (
    DatabaseAdapter,
    DatabaseBackend,
    DatabaseConfig,
    affected_rows,
    row_uuid,
    row_datetime,
    row_bool,
    get_database,
    close_database,
)
from .schema import SCHEMA_STATEMENTS, apply_schema

__all__ = [
    "DatabaseAdapter",
    "DatabaseBackend",
    "DatabaseConfig",
    "affected_rows",
    "row_uuid",
    "row_datetime",
    "row_bool",
    "get_database",
    "close_database",
    "SCHEMA_STATEMENTS",
    "apply_schema",
]
