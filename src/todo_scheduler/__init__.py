"""Todo Scheduler - to-do tasks that repeat on compact schedule rules."""

__version__ = "0.1.0"

from .domain import (
    Task,
    TaskFilter,
    Scheduled,
    Terminate,
    TERMINATE,
    next_occurrence,
    try_next_occurrence,
)

__all__ = [
    "Task",
    "TaskFilter",
    "Scheduled",
    "Terminate",
    "TERMINATE",
    "next_occurrence",
    "try_next_occurrence",
    "__version__",
]
