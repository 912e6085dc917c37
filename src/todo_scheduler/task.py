"""Task data model for Todo Scheduler."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Task:
    """A to-do item with a due date and an optional repeat rule."""

    id: int
    title: str
    date: str = ""  # YYYYMMDD, filled in by the task service
    comment: str = ""
    repeat: str = ""  # "", "d N", "y", "w ...", "m ..."


@dataclass
class TaskFilter:
    """Selection criteria for listing tasks.

    ``id`` wins over ``search``. A ``search`` term that reads as a date
    selects tasks on that day; anything else is matched against title and
    comment.
    """

    id: Optional[int] = None
    search: str = ""
    date: str = ""  # YYYYMMDD, set when the search term is a date
    limit: Optional[int] = None
