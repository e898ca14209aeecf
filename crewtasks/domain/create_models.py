"""Pydantic models for admin form submissions."""

from pydantic import BaseModel, Field, field_validator

from crewtasks.domain.task import TaskFrequency


class TaskDraft(BaseModel):
    """Task fields as entered in the admin task form."""

    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    assigned_to_user_id: str = Field(..., description="User the task is assigned to")
    frequency: TaskFrequency = Field(default=TaskFrequency.DAILY, description="DAILY or WEEKLY")
    repeat_days: list[int] = Field(default_factory=list, description="Weekday numbers, 0=Sunday..6=Saturday")

    @field_validator("repeat_days")
    @classmethod
    def validate_repeat_days(cls, v: list[int]) -> list[int]:
        """Repeat days must be weekday numbers; duplicates are dropped."""
        for day in v:
            if not 0 <= day <= 6:  # noqa: PLR2004
                msg = f"Invalid weekday number: {day} (expected 0=Sunday..6=Saturday)"
                raise ValueError(msg)
        return sorted(set(v))


class EmployeeCreate(BaseModel):
    """Fields for creating an employee from the admin user form."""

    name: str = Field(..., description="Display name")
    pin: str = Field(..., description="Login PIN")
    avatar_url: str | None = Field(default=None, description="Avatar image URL")
    position: str | None = Field(default=None, description="Position label")
