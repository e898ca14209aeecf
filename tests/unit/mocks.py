"""Pure Python in-memory repository for unit testing."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from crewtasks.core.errors import StoreUnavailableError
from crewtasks.core.repository import BaseRepository
from crewtasks.domain.task import Task
from crewtasks.domain.user import User


def ms_at(year: int, month: int, day: int, hour: int = 9) -> int:
    """Epoch milliseconds for a device-local wall-clock time."""
    return int(datetime(year, month, day, hour).timestamp() * 1000)


class InMemoryRepository(BaseRepository):
    """Repository that keeps records in dictionaries.

    Provides the full repository contract without touching disk. Tests can
    make writes fail, or run a hook between a read and the conditional write
    that follows it to simulate another client.
    """

    def __init__(self) -> None:
        """Initialize empty collections."""
        super().__init__()
        self.users: dict[str, dict[str, Any]] = {}
        self.tasks: dict[str, dict[str, Any]] = {}
        self.fail_writes = False
        self.fail_reads = False
        self.before_cas: Callable[[], Awaitable[None]] | None = None

    def _check_write(self) -> None:
        if self.fail_writes:
            raise StoreUnavailableError("Simulated store outage: permission denied")

    def _check_read(self) -> None:
        if self.fail_reads:
            raise StoreUnavailableError("Simulated store outage: unreachable")

    async def _load_users(self) -> list[User]:
        self._check_read()
        return [User.model_validate(record) for record in self.users.values()]

    async def _load_tasks(self) -> list[Task]:
        self._check_read()
        return [Task.model_validate(record) for record in self.tasks.values()]

    async def _get_task(self, task_id: str) -> Task | None:
        self._check_read()
        record = self.tasks.get(task_id)
        return Task.model_validate(record) if record is not None else None

    async def _put_user(self, user: User) -> None:
        self._check_write()
        self.users[user.id] = user.to_record()

    async def _put_task(self, task: Task) -> None:
        self._check_write()
        self.tasks[task.id] = task.to_record()

    async def _remove_user_cascade(self, user_id: str) -> bool:
        self._check_write()
        existed = self.users.pop(user_id, None) is not None
        self.tasks = {key: record for key, record in self.tasks.items() if record["assignedToUserId"] != user_id}
        return existed

    async def _remove_task(self, task_id: str) -> bool:
        self._check_write()
        return self.tasks.pop(task_id, None) is not None

    async def _cas_task_field(self, task_id: str, field: str, expected: Any, value: Any) -> bool:  # noqa: ANN401
        self._check_write()
        record = self.tasks.get(task_id)
        if record is None or record.get(field) != expected:
            return False
        record[field] = value
        return True

    async def compare_and_set_task_field(
        self, task_id: str, field: str, expected: Any, value: Any  # noqa: ANN401
    ) -> bool:
        """Run the race hook, then the real conditional write."""
        if self.before_cas is not None:
            hook, self.before_cas = self.before_cas, None
            await hook()
        return await super().compare_and_set_task_field(task_id, field, expected, value)
