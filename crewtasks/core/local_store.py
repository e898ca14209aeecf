"""Local key/value fallback store kept in a single JSON file.

Mirrors the browser local-storage layout: one key holding the user list and
one holding the task list, each a JSON array of persisted records. The file
is loaded once on connect and rewritten after every mutation. Only the
process that owns the file sees its changes live.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from crewtasks.core.config import Constants
from crewtasks.core.errors import StoreUnavailableError
from crewtasks.core.repository import BaseRepository, parse_tasks, parse_users
from crewtasks.domain.task import Task
from crewtasks.domain.user import User


logger = logging.getLogger(__name__)


class LocalRepository(BaseRepository):
    """Repository over a JSON document on local disk."""

    def __init__(self, path: str | Path) -> None:
        """Remember the file path; data loads in connect()."""
        super().__init__()
        self._path = Path(path).resolve()
        self._data: dict[str, list[dict[str, Any]]] = {
            Constants.LOCAL_USERS_KEY: [],
            Constants.LOCAL_TASKS_KEY: [],
        }

    @property
    def _users(self) -> list[dict[str, Any]]:
        return self._data[Constants.LOCAL_USERS_KEY]

    @property
    def _tasks(self) -> list[dict[str, Any]]:
        return self._data[Constants.LOCAL_TASKS_KEY]

    async def connect(self) -> None:
        """Load the file if it exists."""
        try:
            raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info("Local store file not found, starting empty", extra={"path": str(self._path)})
            return
        except OSError as e:
            msg = f"Failed to read local store {self._path}: {e}"
            raise StoreUnavailableError(msg) from e

        try:
            loaded = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            msg = f"Local store {self._path} is not valid JSON: {e}"
            raise StoreUnavailableError(msg) from e

        for key in (Constants.LOCAL_USERS_KEY, Constants.LOCAL_TASKS_KEY):
            value = loaded.get(key, [])
            records = value if isinstance(value, list) else []
            self._data[key] = [record for record in records if isinstance(record, dict)]

        logger.info(
            "Loaded local store",
            extra={"path": str(self._path), "users": len(self._users), "tasks": len(self._tasks)},
        )

    def _write_file(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self._path)

    async def _persist(self, data: dict[str, list[dict[str, Any]]]) -> None:
        """Write ``data`` to disk, then make it the in-memory state."""
        try:
            await asyncio.to_thread(self._write_file, json.dumps(data, ensure_ascii=False, indent=2))
        except OSError as e:
            logger.error("local_store_write_failed", extra={"path": str(self._path), "error": str(e)})
            msg = f"Failed to write local store {self._path}: {e}"
            raise StoreUnavailableError(msg) from e
        self._data = data

    def _staged(self, **changes: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
        data = {key: list(records) for key, records in self._data.items()}
        data.update(changes)
        return data

    @staticmethod
    def _upserted(records: list[dict[str, Any]], record: dict[str, Any]) -> list[dict[str, Any]]:
        updated = list(records)
        for index, existing in enumerate(updated):
            if existing.get("id") == record["id"]:
                updated[index] = record
                return updated
        updated.append(record)
        return updated

    async def _load_users(self) -> list[User]:
        return parse_users(self._users)

    async def _load_tasks(self) -> list[Task]:
        return parse_tasks(self._tasks)

    async def _get_task(self, task_id: str) -> Task | None:
        tasks = parse_tasks(record for record in self._tasks if record.get("id") == task_id)
        return tasks[0] if tasks else None

    async def _put_user(self, user: User) -> None:
        await self._persist(self._staged(**{Constants.LOCAL_USERS_KEY: self._upserted(self._users, user.to_record())}))

    async def _put_task(self, task: Task) -> None:
        await self._persist(self._staged(**{Constants.LOCAL_TASKS_KEY: self._upserted(self._tasks, task.to_record())}))

    async def _remove_user_cascade(self, user_id: str) -> bool:
        users = [record for record in self._users if record.get("id") != user_id]
        tasks = [record for record in self._tasks if record.get("assignedToUserId") != user_id]
        existed = len(users) < len(self._users)
        await self._persist(self._staged(**{Constants.LOCAL_USERS_KEY: users, Constants.LOCAL_TASKS_KEY: tasks}))
        return existed

    async def _remove_task(self, task_id: str) -> bool:
        tasks = [record for record in self._tasks if record.get("id") != task_id]
        if len(tasks) == len(self._tasks):
            return False
        await self._persist(self._staged(**{Constants.LOCAL_TASKS_KEY: tasks}))
        return True

    async def _cas_task_field(self, task_id: str, field: str, expected: Any, value: Any) -> bool:  # noqa: ANN401
        for index, record in enumerate(self._tasks):
            if record.get("id") != task_id:
                continue
            if record.get(field) != expected:
                return False
            tasks = list(self._tasks)
            tasks[index] = {**record, field: value}
            await self._persist(self._staged(**{Constants.LOCAL_TASKS_KEY: tasks}))
            return True
        return False
