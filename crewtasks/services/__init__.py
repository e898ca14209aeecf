from crewtasks.services import (
    board_service,
    completion_service,
    task_schedule,
    task_service,
    user_service,
)


__all__ = [
    "board_service",
    "completion_service",
    "task_schedule",
    "task_service",
    "user_service",
]
