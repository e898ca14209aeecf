"""Day and week views over a task snapshot, plus new-assignment detection."""

import logging
from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from crewtasks.core.week import now_ms, to_date, week_days
from crewtasks.domain.task import Task, TaskFrequency
from crewtasks.services.task_schedule import is_completed, is_visible


logger = logging.getLogger(__name__)


class BoardEntry(BaseModel):
    """A task as shown on a day board."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task: Task
    completed: bool


class DayBoard(BaseModel):
    """One user's tasks for one date."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    view_date: str
    daily: list[BoardEntry] = Field(default_factory=list)
    weekly: list[BoardEntry] = Field(default_factory=list)
    completed: int = 0
    total: int = 0
    progress: int = Field(default=0, description="Rounded percentage of visible tasks completed")


class WeekDay(BaseModel):
    """One day of the week strip."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: str
    weekday: int = Field(..., description="0=Sunday..6=Saturday")
    selected: bool = False


def _pending_first(entries: list[BoardEntry]) -> list[BoardEntry]:
    return sorted(entries, key=lambda entry: entry.completed)


def build_day_board(*, tasks: Iterable[Task], user_id: str, view_date: date | str) -> DayBoard:
    """Build the board of tasks ``user_id`` sees on ``view_date``.

    Pending tasks sort before completed ones; input order is kept
    otherwise. Progress is 0 when nothing is visible.
    """
    day = to_date(view_date)
    entries = [
        BoardEntry(task=task, completed=is_completed(task, day))
        for task in tasks
        if task.assigned_to_user_id == user_id and is_visible(task, day)
    ]

    completed = sum(1 for entry in entries if entry.completed)
    total = len(entries)
    progress = round(completed / total * 100) if total else 0

    return DayBoard(
        user_id=user_id,
        view_date=day.isoformat(),
        daily=_pending_first([entry for entry in entries if entry.task.frequency == TaskFrequency.DAILY]),
        weekly=_pending_first([entry for entry in entries if entry.task.frequency == TaskFrequency.WEEKLY]),
        completed=completed,
        total=total,
        progress=progress,
    )


def build_week_strip(view_date: date | str) -> list[WeekDay]:
    """Monday..Sunday of the week containing ``view_date``."""
    selected = to_date(view_date)
    return [
        WeekDay(date=day.isoformat(), weekday=day.isoweekday() % 7, selected=day == selected)
        for day in week_days(selected)
    ]


class NewAssignmentWatcher:
    """Detects tasks newly assigned to one user across subscription snapshots.

    The first snapshot only establishes the baseline. After that, tasks for
    the user created after the last checkpoint are reported once, and the
    checkpoint moves to the time of the report.
    """

    def __init__(self, *, user_id: str, started_at_ms: int | None = None) -> None:
        """Start watching from ``started_at_ms`` (defaults to now)."""
        self.user_id = user_id
        self.checkpoint_ms = started_at_ms if started_at_ms is not None else now_ms()
        self._initial = True

    def observe(self, tasks: Iterable[Task], *, at_ms: int | None = None) -> list[Task]:
        """Return tasks that are new since the last checkpoint."""
        if self._initial:
            self._initial = False
            return []

        fresh = [
            task for task in tasks if task.assigned_to_user_id == self.user_id and task.created_at > self.checkpoint_ms
        ]
        if fresh:
            self.checkpoint_ms = at_ms if at_ms is not None else now_ms()
            logger.info("New tasks assigned", extra={"user_id": self.user_id, "count": len(fresh)})
        return fresh

    @staticmethod
    def message(fresh: list[Task]) -> str | None:
        """Notification text for newly assigned tasks."""
        if not fresh:
            return None
        if len(fresh) == 1:
            return f'New task assigned: "{fresh[0].title}"'
        return f"You have {len(fresh)} new tasks assigned."
