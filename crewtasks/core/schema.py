"""SQLite schema for the shared document store (code-first approach)."""

import logging

import aiosqlite


logger = logging.getLogger(__name__)


# Each collection stores the persisted record as a JSON document. Lookup
# columns are generated from the document so they can never drift from it.
SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        data TEXT NOT NULL CHECK (json_valid(data))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        data TEXT NOT NULL CHECK (json_valid(data)),
        assigned_to_user_id TEXT GENERATED ALWAYS AS (json_extract(data, '$.assignedToUserId')) VIRTUAL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to ON tasks (assigned_to_user_id)",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """Create collections that do not exist yet."""
    for statement in SCHEMA_STATEMENTS:
        await conn.execute(statement)
    await conn.commit()
    logger.info("SQLite schema ready")
