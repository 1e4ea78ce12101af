"""
Database Migration: Create Bank Book Tables

Creates the journal and bank book tables from the ORM models and checks that
the one-to-one journal link (unique bank_book_entries.journal_entry_id) is
enforced by the database.
"""

import asyncio
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect

from database.connection import get_engine, create_tables, dispose_engine

EXPECTED_TABLES = ("journal_entries", "journal_entry_lines", "bank_book_entries")


def _journal_link_is_unique(sync_conn) -> bool:
    inspector = inspect(sync_conn)
    unique_sets = [c["column_names"] for c in inspector.get_unique_constraints("bank_book_entries")]
    unique_sets += [i["column_names"] for i in inspector.get_indexes("bank_book_entries") if i.get("unique")]
    return ["journal_entry_id"] in unique_sets


async def migrate():
    """Create the bank book tables."""
    print("Creating bank book tables...")

    engine = get_engine()
    await create_tables(engine)

    async with engine.connect() as conn:
        table_names = await conn.run_sync(lambda c: inspect(c).get_table_names())
        for name in EXPECTED_TABLES:
            mark = "✓" if name in table_names else "✗"
            print(f"  {mark} {name}")

        if await conn.run_sync(_journal_link_is_unique):
            print("  ✓ bank_book_entries.journal_entry_id is unique")
        else:
            print("  ✗ bank_book_entries.journal_entry_id has no unique constraint")

    await dispose_engine()
    print("\n✅ Bank book tables ready!")


if __name__ == "__main__":
    asyncio.run(migrate())
