"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from crewtasks.core.local_store import LocalRepository
from crewtasks.core.sqlite_store import SqliteRepository
from crewtasks.domain.task import Task, TaskFrequency
from crewtasks.domain.user import User, UserRole
from tests.unit.mocks import InMemoryRepository, ms_at


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with sensible defaults."""

    def _make(**overrides: Any) -> Task:
        data: dict[str, Any] = {
            "id": "t1",
            "title": "Clean main entrance",
            "assigned_to_user_id": "u2",
            "frequency": TaskFrequency.DAILY,
            "repeat_days": [0, 1, 2, 3, 4, 5, 6],
            "last_completed_date": None,
            "created_at": ms_at(2024, 1, 1),
        }
        data.update(overrides)
        return Task(**data)

    return _make


@pytest.fixture
def make_user() -> Callable[..., User]:
    """Factory for users with sensible defaults."""

    def _make(**overrides: Any) -> User:
        data: dict[str, Any] = {
            "id": "u2",
            "name": "Juan",
            "role": UserRole.EMPLOYEE,
            "pin": "1111",
            "position": "Maintenance",
        }
        data.update(overrides)
        return User(**data)

    return _make


@pytest.fixture
def in_memory_repo() -> InMemoryRepository:
    """Provides a fresh InMemoryRepository for each test."""
    return InMemoryRepository()


@pytest.fixture
async def local_repo(tmp_path) -> AsyncIterator[LocalRepository]:
    """Connected local-file repository in a temporary directory."""
    repo = LocalRepository(tmp_path / "local_store.json")
    await repo.connect()
    yield repo
    await repo.close()


@pytest.fixture
async def sqlite_repo(tmp_path) -> AsyncIterator[SqliteRepository]:
    """Connected SQLite repository in a temporary directory."""
    repo = SqliteRepository(tmp_path / "crewtasks.db")
    await repo.connect()
    yield repo
    await repo.close()


@pytest.fixture(params=["in_memory", "local", "sqlite"])
async def any_repo(request, tmp_path) -> AsyncIterator[Any]:
    """Each repository backend in turn."""
    if request.param == "in_memory":
        repo: Any = InMemoryRepository()
    elif request.param == "local":
        repo = LocalRepository(tmp_path / "local_store.json")
    else:
        repo = SqliteRepository(tmp_path / "crewtasks.db")
    await repo.connect()
    yield repo
    await repo.close()
