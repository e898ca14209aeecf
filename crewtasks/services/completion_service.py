"""Completion toggle: the single state transition on a task."""

import logging
from datetime import date

from crewtasks.core.logging import span
from crewtasks.core.repository import Repository
from crewtasks.core.week import to_date, today_iso
from crewtasks.domain.task import Task


logger = logging.getLogger(__name__)

LAST_COMPLETED_FIELD = "lastCompletedDate"


async def toggle_completion(*, repo: Repository, task_id: str, today: date | str | None = None) -> Task | None:
    """Flip a task's completion marker for ``today``.

    If the task was last completed today it becomes not completed; otherwise
    it is marked completed today, overwriting any older date.

    The write is conditional on the value that was read. If another client
    changed the marker in between, nothing is written and the record as that
    client left it is returned, so the first writer wins.

    Args:
        repo: Repository holding the task
        task_id: Task ID
        today: Calendar date of the action (defaults to the device-local date)

    Returns:
        The task's new state, or None if the task does not exist

    Raises:
        StoreUnavailableError: If the store read or write fails
    """
    with span("completion_service.toggle_completion"):
        task = await repo.read_task(task_id)
        if task is None:
            logger.info("Toggle ignored, task not found", extra={"task_id": task_id})
            return None

        today_str = to_date(today).isoformat() if today is not None else today_iso()
        previous = task.last_completed_date
        new_value = None if previous == today_str else today_str

        applied = await repo.compare_and_set_task_field(task_id, LAST_COMPLETED_FIELD, previous, new_value)
        if applied:
            logger.info(
                "Toggled task completion",
                extra={"task_id": task_id, "previous": previous, "last_completed_date": new_value},
            )
            return task.model_copy(update={"last_completed_date": new_value})

        current = await repo.read_task(task_id)
        logger.warning(
            "Toggle lost to a concurrent update",
            extra={
                "task_id": task_id,
                "expected": previous,
                "current": current.last_completed_date if current else None,
            },
        )
        return current
