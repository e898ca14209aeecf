"""Repository contract for users and tasks, and the shared live-update plumbing.

Backends implement the underscore-prefixed storage primitives; this module
serializes writes, versions every collection snapshot and pushes it to
subscribers before a write returns (read-your-writes for the caller).
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Protocol

from pydantic import ValidationError

from crewtasks.core.change_feed import ChangeCallback, ChangeFeed, Unsubscribe
from crewtasks.domain.task import Task
from crewtasks.domain.user import User


logger = logging.getLogger(__name__)

USERS = "users"
TASKS = "tasks"
COLLECTIONS = (USERS, TASKS)


class ChangeRelay(Protocol):
    """Forwards change notices to other processes sharing the same store."""

    async def announce(self, collection: str) -> None: ...


class Repository(Protocol):
    """Operations the scheduling core and services need from persistence."""

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def subscribe_to_users(self, on_change: ChangeCallback) -> Unsubscribe: ...

    async def subscribe_to_tasks(self, on_change: ChangeCallback) -> Unsubscribe: ...

    async def list_users(self) -> list[User]: ...

    async def list_tasks(self) -> list[Task]: ...

    async def upsert_user(self, user: User) -> User: ...

    async def delete_user(self, user_id: str) -> bool: ...

    async def upsert_task(self, task: Task) -> Task: ...

    async def delete_task(self, task_id: str) -> bool: ...

    async def read_task(self, task_id: str) -> Task | None: ...

    async def write_task_field(self, task_id: str, fields: dict[str, Any]) -> Task | None: ...

    async def compare_and_set_task_field(
        self, task_id: str, field: str, expected: Any, value: Any  # noqa: ANN401
    ) -> bool: ...


def parse_users(records: Iterable[dict[str, Any]]) -> list[User]:
    """Validate stored user records, skipping ones that cannot be read."""
    users = []
    for record in records:
        try:
            users.append(User.model_validate(record))
        except ValidationError as e:
            logger.warning("Skipping unreadable user record", extra={"record_id": record.get("id"), "error": str(e)})
    return users


def parse_tasks(records: Iterable[dict[str, Any]]) -> list[Task]:
    """Validate stored task records, skipping ones that cannot be read."""
    tasks = []
    for record in records:
        try:
            tasks.append(Task.model_validate(record))
        except ValidationError as e:
            logger.warning("Skipping unreadable task record", extra={"record_id": record.get("id"), "error": str(e)})
    return tasks


def merge_task_fields(task: Task, fields: dict[str, Any]) -> Task:
    """Apply a partial camelCase field update to a task.

    Raises:
        ValueError: If the update names unknown fields or produces an invalid task
    """
    record = task.to_record()
    unknown = set(fields) - Task.record_keys()
    if unknown:
        msg = f"Unknown task fields: {sorted(unknown)}"
        raise ValueError(msg)
    if fields.get("id", task.id) != task.id:
        msg = "Task id cannot be changed"
        raise ValueError(msg)
    record.update(fields)
    return Task.model_validate(record)


class BaseRepository:
    """Shared subscription and write-serialization logic for all backends."""

    def __init__(self) -> None:
        """Initialize change feed, write lock and snapshot versions."""
        self._feed = ChangeFeed()
        self._lock = asyncio.Lock()
        self._versions = dict.fromkeys(COLLECTIONS, 0)
        self._relay: ChangeRelay | None = None

    def attach_relay(self, relay: ChangeRelay | None) -> None:
        """Forward change notices for every write to ``relay``."""
        self._relay = relay

    async def connect(self) -> None:
        """Open the backend."""

    async def close(self) -> None:
        """Release backend resources."""

    # Storage primitives, always called with the write lock held.

    async def _load_users(self) -> list[User]:
        raise NotImplementedError

    async def _load_tasks(self) -> list[Task]:
        raise NotImplementedError

    async def _put_user(self, user: User) -> None:
        raise NotImplementedError

    async def _remove_user_cascade(self, user_id: str) -> bool:
        raise NotImplementedError

    async def _put_task(self, task: Task) -> None:
        raise NotImplementedError

    async def _remove_task(self, task_id: str) -> bool:
        raise NotImplementedError

    async def _get_task(self, task_id: str) -> Task | None:
        raise NotImplementedError

    async def _cas_task_field(self, task_id: str, field: str, expected: Any, value: Any) -> bool:  # noqa: ANN401
        raise NotImplementedError

    # Public contract

    async def list_users(self) -> list[User]:
        """Return every user in store order."""
        async with self._lock:
            return await self._load_users()

    async def list_tasks(self) -> list[Task]:
        """Return every task in store order."""
        async with self._lock:
            return await self._load_tasks()

    async def read_task(self, task_id: str) -> Task | None:
        """Return a task by ID, or None if it does not exist."""
        async with self._lock:
            return await self._get_task(task_id)

    async def subscribe_to_users(self, on_change: ChangeCallback) -> Unsubscribe:
        """Deliver the user list now and after every change."""
        return await self._subscribe(USERS, on_change)

    async def subscribe_to_tasks(self, on_change: ChangeCallback) -> Unsubscribe:
        """Deliver the task list now and after every change."""
        return await self._subscribe(TASKS, on_change)

    async def upsert_user(self, user: User) -> User:
        """Create or fully replace a user record."""
        async with self._lock:
            await self._put_user(user)
            logger.info("Saved user", extra={"user_id": user.id})
        await self._changed(USERS)
        return user

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user and every task assigned to it."""
        async with self._lock:
            existed = await self._remove_user_cascade(user_id)
            logger.info("Deleted user with tasks", extra={"user_id": user_id, "existed": existed})
        await self._changed(USERS, TASKS)
        return existed

    async def upsert_task(self, task: Task) -> Task:
        """Create or fully replace a task record."""
        async with self._lock:
            await self._put_task(task)
            logger.info("Saved task", extra={"task_id": task.id})
        await self._changed(TASKS)
        return task

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task; returns False if it did not exist."""
        async with self._lock:
            existed = await self._remove_task(task_id)
            logger.info("Deleted task", extra={"task_id": task_id, "existed": existed})
        if existed:
            await self._changed(TASKS)
        return existed

    async def write_task_field(self, task_id: str, fields: dict[str, Any]) -> Task | None:
        """Merge camelCase ``fields`` into a task; returns None if it does not exist."""
        async with self._lock:
            task = await self._get_task(task_id)
            if task is None:
                return None
            updated = merge_task_fields(task, fields)
            await self._put_task(updated)
            logger.info("Updated task fields", extra={"task_id": task_id, "fields": sorted(fields)})
        await self._changed(TASKS)
        return updated

    async def compare_and_set_task_field(
        self, task_id: str, field: str, expected: Any, value: Any  # noqa: ANN401
    ) -> bool:
        """Set ``field`` to ``value`` only if it still equals ``expected``."""
        if field not in Task.record_keys():
            msg = f"Unknown task field: {field}"
            raise ValueError(msg)
        async with self._lock:
            applied = await self._cas_task_field(task_id, field, expected, value)
        if applied:
            await self._changed(TASKS)
        return applied

    async def refresh(self, collection: str) -> None:
        """Re-read ``collection`` and push it to local subscribers."""
        async with self._lock:
            snapshot = await self._load(collection)
            self._versions[collection] += 1
            version = self._versions[collection]
        await self._feed.publish(collection, snapshot, version)

    async def _load(self, collection: str) -> list[Any]:
        if collection == USERS:
            return await self._load_users()
        if collection == TASKS:
            return await self._load_tasks()
        msg = f"Unknown collection: {collection}"
        raise ValueError(msg)

    async def _subscribe(self, collection: str, on_change: ChangeCallback) -> Unsubscribe:
        async with self._lock:
            snapshot = await self._load(collection)
            version = self._versions[collection]
            token, unsubscribe = self._feed.add(collection, on_change)
        await self._feed.deliver(collection, token, snapshot, version)
        return unsubscribe

    async def _changed(self, *collections: str) -> None:
        for collection in collections:
            await self.refresh(collection)
            if self._relay is not None:
                await self._relay.announce(collection)
