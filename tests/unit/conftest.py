"""Pytest configuration and fixtures for unit tests."""

import pytest

from crewtasks.services.seed import seed_if_empty
from tests.unit.mocks import InMemoryRepository, ms_at


# Monday 2024-01-01 09:00 local time
SEED_CREATED_AT = ms_at(2024, 1, 1)


@pytest.fixture
async def seeded_repo(in_memory_repo: InMemoryRepository) -> InMemoryRepository:
    """In-memory repository holding the demo crew and tasks."""
    await seed_if_empty(repo=in_memory_repo, admin_pin="9999", now_ms=SEED_CREATED_AT)
    return in_memory_repo


class SnapshotRecorder:
    """Collects every snapshot a subscription delivers."""

    def __init__(self) -> None:
        self.snapshots: list[list] = []

    def __call__(self, snapshot: list) -> None:
        self.snapshots.append(snapshot)

    @property
    def latest(self) -> list:
        return self.snapshots[-1]


@pytest.fixture
def recorder() -> SnapshotRecorder:
    """Fresh snapshot recorder."""
    return SnapshotRecorder()
