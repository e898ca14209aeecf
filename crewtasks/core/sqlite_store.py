"""Shared document store backed by SQLite.

Every process pointing at the same database file sees the same users and
tasks. Writes inside one process reach local subscribers immediately; other
processes are notified through the optional Redis change relay.
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite

from crewtasks.core.errors import StoreUnavailableError
from crewtasks.core.repository import BaseRepository, parse_tasks, parse_users
from crewtasks.core.schema import init_db
from crewtasks.domain.task import Task
from crewtasks.domain.user import User


logger = logging.getLogger(__name__)


@asynccontextmanager
async def _store_errors(operation: str, conn: aiosqlite.Connection | None = None) -> AsyncIterator[None]:
    """Translate backend failures into StoreUnavailableError.

    With ``conn`` the block is a write: on failure its open transaction is
    rolled back so the connection never reads rows that were not committed.
    """
    try:
        yield
    except (aiosqlite.Error, OSError) as e:
        if conn is not None:
            try:
                await conn.rollback()
            except (aiosqlite.Error, OSError) as rollback_error:
                logger.error(
                    "sqlite_rollback_failed", extra={"operation": operation, "error": str(rollback_error)}
                )
        logger.error("sqlite_operation_failed", extra={"operation": operation, "error": str(e)})
        msg = f"SQLite store failed during {operation}: {e}"
        raise StoreUnavailableError(msg) from e


class SqliteRepository(BaseRepository):
    """Repository over a single aiosqlite connection in WAL mode."""

    def __init__(self, db_path: str | Path) -> None:
        """Remember the database path; the connection opens in connect()."""
        super().__init__()
        self._db_path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None

    @property
    def conn(self) -> aiosqlite.Connection:
        """The open connection."""
        if self._conn is None:
            msg = "SQLite repository is not connected. Call connect() first."
            raise StoreUnavailableError(msg)
        return self._conn

    async def connect(self) -> None:
        """Open the database file and create the schema."""
        if self._conn is not None:
            return
        async with _store_errors("connect"):
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._db_path))
            await conn.execute("PRAGMA journal_mode = WAL")
            await init_db(conn)
            self._conn = conn
        logger.info("Opened SQLite store", extra={"db_path": str(self._db_path)})

    async def close(self) -> None:
        """Close the connection if open."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            await conn.close()
            logger.info("Closed SQLite store", extra={"db_path": str(self._db_path)})
        except aiosqlite.Error as e:
            logger.warning("Error closing SQLite store", extra={"error": str(e)})

    async def _documents(self, query: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        cursor = await self.conn.execute(query, params)
        rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]

    async def _load_users(self) -> list[User]:
        async with _store_errors("load_users"):
            return parse_users(await self._documents("SELECT data FROM users ORDER BY rowid"))

    async def _load_tasks(self) -> list[Task]:
        async with _store_errors("load_tasks"):
            return parse_tasks(await self._documents("SELECT data FROM tasks ORDER BY rowid"))

    async def _get_task(self, task_id: str) -> Task | None:
        async with _store_errors("get_task"):
            tasks = parse_tasks(await self._documents("SELECT data FROM tasks WHERE id = ?", (task_id,)))
        return tasks[0] if tasks else None

    async def _put_user(self, user: User) -> None:
        async with _store_errors("put_user", self.conn):
            await self.conn.execute(
                "INSERT INTO users (id, data) VALUES (?, ?) ON CONFLICT(id) DO UPDATE SET data = excluded.data",
                (user.id, json.dumps(user.to_record())),
            )
            await self.conn.commit()

    async def _put_task(self, task: Task) -> None:
        async with _store_errors("put_task", self.conn):
            await self.conn.execute(
                "INSERT INTO tasks (id, data) VALUES (?, ?) ON CONFLICT(id) DO UPDATE SET data = excluded.data",
                (task.id, json.dumps(task.to_record())),
            )
            await self.conn.commit()

    async def _remove_user_cascade(self, user_id: str) -> bool:
        async with _store_errors("remove_user", self.conn):
            cursor = await self.conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            existed = cursor.rowcount > 0
            await self.conn.execute("DELETE FROM tasks WHERE assigned_to_user_id = ?", (user_id,))
            await self.conn.commit()
        return existed

    async def _remove_task(self, task_id: str) -> bool:
        async with _store_errors("remove_task", self.conn):
            cursor = await self.conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            await self.conn.commit()
        return cursor.rowcount > 0

    async def _cas_task_field(self, task_id: str, field: str, expected: Any, value: Any) -> bool:  # noqa: ANN401
        path = f"$.{field}"
        async with _store_errors("compare_and_set", self.conn):
            cursor = await self.conn.execute(
                "UPDATE tasks SET data = json_set(data, ?, json(?)) WHERE id = ? AND json_extract(data, ?) IS ?",
                (path, json.dumps(value), task_id, path, expected),
            )
            await self.conn.commit()
        return cursor.rowcount > 0
