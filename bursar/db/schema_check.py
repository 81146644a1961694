"""
Create any missing payment tables in the connected database.

Idempotent: existing tables are left untouched.
Usage: python -m bursar.db.schema_check
"""

import asyncio
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

import bursar.core.models  # noqa: F401  registers every table on Base.metadata
from bursar.db.session import Base, engine


# Dependency order: lookup tables first, then the ledger
REQUIRED_TABLES: List[str] = [
    "students",
    "guardians",
    "student_guardians",
    "fee_types",
    "school_settings",
    "payment_gateway_settings",
    "fee_obligations",
    "fee_payments",
    "gateway_transactions",
    "reconciliation_issues",
    "fee_audit_logs",
]


async def find_missing_tables(db_engine: AsyncEngine) -> List[str]:
    async with db_engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    return [name for name in REQUIRED_TABLES if name not in existing]


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """
    Ensure that all required tables exist in the connected database.
    Returns the names of the tables that were created.
    """
    missing = await find_missing_tables(db_engine)
    if missing:
        tables = [Base.metadata.tables[name] for name in missing]
        async with db_engine.begin() as conn:
            await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, tables=tables))
    return missing


async def main() -> None:
    created = await ensure_tables(engine)
    if created:
        print("Created missing tables: " + ", ".join(created))
    else:
        print("All required payment tables already exist in the database.")


if __name__ == "__main__":
    asyncio.run(main())
