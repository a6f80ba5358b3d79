"""
Migration script to add the per-vote identity unique index on keys.

The ring service rejects a second enrollment by the same identity before
inserting, but two concurrent requests can both pass that check. This index
makes the database reject the loser:

- Only ONE key per (vote_id, lower(email))
- Database-level enforcement (cannot be bypassed by application race conditions)
- IntegrityError raised on duplicate insert attempts

Run this script to add the index to databases created before it existed.
"""

import asyncio
import os
import sys

# Add the parent directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from db.session import engine

INDEX_NAME = "uq_keys_vote_email_lower"


async def add_keys_email_unique_index() -> bool:
    """Add unique index on (vote_id, lower(email)) to the keys table."""
    print("Starting keys unique index migration...")

    async with engine.begin() as conn:
        result = await conn.execute(
            text("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_name = 'keys'
            )
        """)
        )
        if not result.scalar():
            print("Table 'keys' does not exist. It will be created with the index on startup.")
            return True

        result = await conn.execute(
            text("SELECT 1 FROM pg_indexes WHERE tablename = 'keys' AND indexname = :name"),
            {"name": INDEX_NAME},
        )
        if result.fetchone() is not None:
            print(f"Index '{INDEX_NAME}' already exists.")
            return True

        print("\nChecking for identities enrolled more than once per vote...")
        result = await conn.execute(
            text("""
            SELECT vote_id, lower(email) AS email, COUNT(*) AS count
            FROM keys
            GROUP BY vote_id, lower(email)
            HAVING COUNT(*) > 1
            ORDER BY vote_id
            LIMIT 20
        """)
        )
        duplicates = result.fetchall()

        if duplicates:
            # Keys are audit records; removing one is an organizer decision
            print(f"\nFound {len(duplicates)} duplicate enrollments:")
            for dup in duplicates:
                print(f"   - vote {dup[0]}: {dup[1]} ({dup[2]} keys)")
            print("\nResolve these manually, then re-run the migration.")
            return False

        await conn.execute(
            text(f"CREATE UNIQUE INDEX {INDEX_NAME} ON keys (vote_id, lower(email))")
        )
        print(f"Created unique index '{INDEX_NAME}'.")

    return True


async def main() -> int:
    try:
        ok = await add_keys_email_unique_index()
    finally:
        await engine.dispose()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
