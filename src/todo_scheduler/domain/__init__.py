"""Domain models and the recurrence engine for Todo Scheduler."""

from ..task import Task, TaskFilter
from ..recurring import (
    RecurrenceParser,
    RecurrenceError,
    RecurrenceErrorKind,
    Scheduled,
    Terminate,
    TERMINATE,
    next_occurrence,
    try_next_occurrence,
)

__all__ = [
    "Task",
    "TaskFilter",
    "RecurrenceParser",
    "RecurrenceError",
    "RecurrenceErrorKind",
    "Scheduled",
    "Terminate",
    "TERMINATE",
    "next_occurrence",
    "try_next_occurrence",
]
