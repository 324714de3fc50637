#!/usr/bin/env python3
"""
Database Schema Runner

Usage:
    python -m db.migrate              # Create missing auth tables
    python -m db.migrate --status     # Show which auth tables exist

Environment:
    DATABASE_BACKEND - "postgresql" or "sqlite" (default: sqlite)
    DATABASE_URL     - PostgreSQL connection string
    SQLITE_PATH      - SQLite database file
"""

from __future__ import annotations

import argparse
import asyncio

from hvac_portal.core.database import (
    DatabaseAdapter,
    DatabaseBackend,
    DatabaseConfig,
    apply_schema,
)

AUTH_TABLES = ("employees", "employee_sessions", "security_events")


def describe(config: DatabaseConfig) -> str:
    if config.backend == DatabaseBackend.POSTGRESQL:
        url = config.postgres_url
        return url.split("@")[1] if "@" in url else url
    return config.sqlite_path


async def existing_tables(db: DatabaseAdapter) -> set:
    """Names of the auth tables present in the database."""
    if db.backend == DatabaseBackend.POSTGRESQL:
        rows = await db.fetch(
            """
            SELECT table_name AS name
            FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_type = 'BASE TABLE'
            """
        )
    else:
        rows = await db.fetch("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row["name"] for row in rows} & set(AUTH_TABLES)


async def run_schema(db: DatabaseAdapter) -> None:
    """Create any missing auth tables and indexes."""
    print("=" * 60)
    print("HVAC Portal Schema Runner")
    print("=" * 60)
    print(f"\nDatabase: {describe(db.config)}\n")

    before = await existing_tables(db)
    await apply_schema(db)
    created = (await existing_tables(db)) - before

    if created:
        for name in sorted(created):
            print(f"  created {name}")
    else:
        print("No missing tables. Database is up to date.")


async def show_status(db: DatabaseAdapter) -> None:
    """Show which auth tables exist."""
    print(f"Database: {describe(db.config)}\n")
    present = await existing_tables(db)
    for name in AUTH_TABLES:
        status = "present" if name in present else "missing"
        print(f"  {name}: {status}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="HVAC Portal Schema Runner")
    parser.add_argument("--status", action="store_true", help="Show schema status")
    args = parser.parse_args()

    db = DatabaseAdapter()
    await db.connect()
    try:
        if args.status:
            await show_status(db)
        else:
            await run_schema(db)
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
