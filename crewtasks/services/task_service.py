"""Task service for creating, editing and deleting tasks from the admin board."""

import logging
from datetime import date

from crewtasks.core.logging import span
from crewtasks.core.repository import Repository
from crewtasks.core.week import DAYS_PER_WEEK, now_ms as current_ms, to_date
from crewtasks.domain.create_models import TaskDraft
from crewtasks.domain.task import Task, TaskFrequency
from crewtasks.services.user_service import new_record_id


logger = logging.getLogger(__name__)


def ui_day_to_weekday(index: int) -> int:
    """Convert a Monday-first picker index (0=Monday..6=Sunday) to 0=Sunday numbering."""
    return (index + 1) % DAYS_PER_WEEK


def weekday_to_ui_day(weekday: int) -> int:
    """Convert a 0=Sunday weekday number to a Monday-first picker index."""
    return (weekday - 1) % DAYS_PER_WEEK


def build_task(
    *,
    draft: TaskDraft,
    view_date: date | str,
    existing: Task | None = None,
    now_ms: int | None = None,
) -> Task:
    """Build the task record an admin form submission describes.

    WEEKLY tasks carry no repeat days. A DAILY task with no repeat days is a
    one-off on the date being viewed. Editing keeps the ID, completion marker
    and creation time of the existing task.

    Raises:
        ValueError: If the title is blank or the view date is not a date
    """
    title = draft.title.strip()
    if not title:
        msg = "Task title is required"
        raise ValueError(msg)

    repeat_days = [] if draft.frequency == TaskFrequency.WEEKLY else list(draft.repeat_days)
    scheduled_date = (
        to_date(view_date).isoformat() if draft.frequency == TaskFrequency.DAILY and not repeat_days else None
    )

    return Task(
        id=existing.id if existing else new_record_id(),
        title=title,
        description=draft.description.strip(),
        assigned_to_user_id=draft.assigned_to_user_id,
        frequency=draft.frequency,
        repeat_days=repeat_days,
        scheduled_date=scheduled_date,
        last_completed_date=existing.last_completed_date if existing else None,
        created_at=existing.created_at if existing else (now_ms if now_ms is not None else current_ms()),
    )


async def save_task(
    *,
    repo: Repository,
    draft: TaskDraft,
    view_date: date | str,
    task_id: str | None = None,
    now_ms: int | None = None,
) -> Task:
    """Create a task, or replace the task ``task_id`` when editing.

    Raises:
        KeyError: If ``task_id`` is given but the task does not exist
        ValueError: If the draft is invalid
    """
    with span("task_service.save_task"):
        existing = None
        if task_id is not None:
            existing = await repo.read_task(task_id)
            if existing is None:
                msg = f"Task not found: {task_id}"
                raise KeyError(msg)

        task = build_task(draft=draft, view_date=view_date, existing=existing, now_ms=now_ms)
        await repo.upsert_task(task)
        logger.info(
            "%s task: %s",
            "Updated" if existing else "Created",
            task.title,
            extra={"task_id": task.id, "assigned_to_user_id": task.assigned_to_user_id},
        )
        return task


async def delete_task(*, repo: Repository, task_id: str) -> bool:
    """Delete a task; returns False if it did not exist."""
    with span("task_service.delete_task"):
        return await repo.delete_task(task_id)


async def tasks_for_user(*, repo: Repository, user_id: str) -> list[Task]:
    """All tasks assigned to ``user_id``, in store order."""
    return [task for task in await repo.list_tasks() if task.assigned_to_user_id == user_id]
