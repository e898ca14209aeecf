"""Domain models and DTOs."""

from crewtasks.domain.create_models import EmployeeCreate, TaskDraft
from crewtasks.domain.task import Task, TaskFrequency
from crewtasks.domain.user import User, UserRole


__all__ = [
    "EmployeeCreate",
    "Task",
    "TaskDraft",
    "TaskFrequency",
    "User",
    "UserRole",
]
