"""Starter crew and tasks for an empty store."""

import logging

from crewtasks.core.logging import span
from crewtasks.core.repository import Repository
from crewtasks.core.week import now_ms as current_ms
from crewtasks.domain.task import Task, TaskFrequency
from crewtasks.domain.user import User, UserRole
from crewtasks.services.user_service import default_avatar_url


logger = logging.getLogger(__name__)

EVERY_DAY = [0, 1, 2, 3, 4, 5, 6]


def demo_users(admin_pin: str) -> list[User]:
    """One administrator and two employees."""
    return [
        User(
            id="u1",
            name="Administrator",
            role=UserRole.ADMIN,
            pin=admin_pin,
            avatar_url=default_avatar_url("Administrator"),
            position="Manager",
        ),
        User(
            id="u2",
            name="Juan",
            role=UserRole.EMPLOYEE,
            pin="1111",
            avatar_url=default_avatar_url("Juan"),
            position="Maintenance",
        ),
        User(
            id="u3",
            name="Maria Lopez",
            role=UserRole.EMPLOYEE,
            pin="2222",
            avatar_url=default_avatar_url("Maria Lopez"),
            position="Kitchen",
        ),
    ]


def demo_tasks(created_at: int) -> list[Task]:
    """Two every-day tasks and one task for the current week."""
    return [
        Task(
            id="t1",
            title="Clean main entrance",
            description="Sweep and mop the entrance hall, clean the door glass.",
            assigned_to_user_id="u2",
            frequency=TaskFrequency.DAILY,
            repeat_days=EVERY_DAY,
            created_at=created_at,
        ),
        Task(
            id="t2",
            title="Chemicals inventory",
            description="Count bleach, soap and degreaser bottles. Note what is missing.",
            assigned_to_user_id="u2",
            frequency=TaskFrequency.WEEKLY,
            repeat_days=[],
            created_at=created_at,
        ),
        Task(
            id="t3",
            title="Check temperatures",
            description="Verify thermostats of fridges 1 and 2 and the freezer.",
            assigned_to_user_id="u3",
            frequency=TaskFrequency.DAILY,
            repeat_days=EVERY_DAY,
            created_at=created_at,
        ),
    ]


async def seed_if_empty(*, repo: Repository, admin_pin: str, now_ms: int | None = None) -> bool:
    """Write the starter crew and tasks if the store has no users.

    Returns:
        True if data was written
    """
    with span("seed.seed_if_empty"):
        if await repo.list_users():
            logger.info("Store already has users, skipping seed data")
            return False

        for user in demo_users(admin_pin):
            await repo.upsert_user(user)
        for task in demo_tasks(now_ms if now_ms is not None else current_ms()):
            await repo.upsert_task(task)

        logger.info("Seeded demo users and tasks")
        return True
