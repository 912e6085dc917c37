"""Application services for Todo Scheduler."""

from .tasks import TaskService, TaskError, TaskErrorKind

__all__ = [
    "TaskService",
    "TaskError",
    "TaskErrorKind",
]
