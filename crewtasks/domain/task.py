"""Task domain models and enums."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Keys dropped from the persisted record when unset; lastCompletedDate is always written.
_OPTIONAL_RECORD_KEYS = frozenset({"description", "repeatDays", "scheduledDate"})


class TaskFrequency(StrEnum):
    """How a task is scheduled."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class Task(BaseModel):
    """Task data transfer object.

    Attributes are snake_case; the persisted record uses camelCase keys.
    Date fields are kept as plain strings so a malformed stored value
    degrades to "not visible" / "not completed" instead of failing to load.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique, stable task ID")
    title: str = Field(..., description="Task title (e.g., 'Clean main entrance')")
    description: str | None = Field(default=None, description="Optional free-text details")
    assigned_to_user_id: str = Field(..., description="ID of the user who owns the task")
    frequency: TaskFrequency = Field(..., description="DAILY or WEEKLY")
    repeat_days: list[int] | None = Field(
        default=None, description="Weekday numbers (0=Sunday..6=Saturday) a DAILY task recurs on"
    )
    scheduled_date: str | None = Field(default=None, description="ISO date of a one-off DAILY task")
    last_completed_date: str | None = Field(default=None, description="ISO date the task was last marked done")
    created_at: int = Field(..., description="Creation timestamp in epoch milliseconds")

    @classmethod
    def record_keys(cls) -> frozenset[str]:
        """Keys of the persisted record shape."""
        return frozenset(info.alias or name for name, info in cls.model_fields.items())

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record shape."""
        record = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in record.items() if value is not None or key not in _OPTIONAL_RECORD_KEYS}
