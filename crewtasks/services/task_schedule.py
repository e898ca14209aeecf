"""Pure visibility and completion predicates for tasks.

Both predicates take the target date explicitly and never raise: missing or
malformed data reads as "not visible" / "not completed".

A WEEKLY task belongs to the single week it was created in. It is not
re-issued in later weeks.
"""

import logging
from datetime import date

from crewtasks.core.week import date_of_timestamp, js_weekday, monday_of, to_date
from crewtasks.domain.task import Task, TaskFrequency


logger = logging.getLogger(__name__)


def is_visible(task: Task, target_date: date | str) -> bool:
    """Return True if ``task`` appears in the task list for ``target_date``."""
    try:
        if task.frequency == TaskFrequency.WEEKLY:
            return monday_of(date_of_timestamp(task.created_at)) == monday_of(target_date)

        if task.frequency != TaskFrequency.DAILY:
            return False

        if task.repeat_days:
            return js_weekday(target_date) in task.repeat_days

        if task.scheduled_date:
            return task.scheduled_date == to_date(target_date).isoformat()
    except (ValueError, TypeError, OverflowError, OSError) as e:
        logger.debug("Treating task as not visible", extra={"task_id": task.id, "error": str(e)})

    return False


def is_completed(task: Task, target_date: date | str) -> bool:
    """Return True if ``task`` counts as done for ``target_date``.

    DAILY tasks must have been completed on that exact date. WEEKLY tasks
    count as done for every day of the week in which they were completed.
    """
    if not task.last_completed_date:
        return False

    try:
        if task.frequency == TaskFrequency.WEEKLY:
            return monday_of(task.last_completed_date) == monday_of(target_date)
        if task.frequency == TaskFrequency.DAILY:
            return task.last_completed_date == to_date(target_date).isoformat()
    except (ValueError, TypeError) as e:
        logger.debug("Treating task as not completed", extra={"task_id": task.id, "error": str(e)})

    return False
