"""Task lifecycle service.

Normalizes task dates through the recurrence engine before they are stored:
past one-shot tasks move to today, past repeating tasks move to their next
occurrence, and completing a task either reschedules or removes it.
"""

import logging
from dataclasses import replace
from datetime import date
from enum import Enum
from typing import Callable, List, Optional

from ..config import ConfigModel
from ..recurring import (
    RecurrenceError,
    RecurrenceErrorKind,
    Terminate,
    next_occurrence,
    parse_rule,
    parse_task_date,
)
from ..storage import Storage, StorageError, unstorable_title_reason
from ..task import Task, TaskFilter
from ..utils.datetime import format_compact_date, parse_display_date, today as local_today

logger = logging.getLogger(__name__)


class TaskErrorKind(Enum):
    BAD_ID = "bad_id"
    BAD_TITLE = "bad_title"
    BAD_DATE = "bad_date"
    BAD_RULE = "bad_rule"
    STORAGE = "storage"


class TaskError(Exception):
    """A task operation was rejected or could not be completed."""

    def __init__(self, kind: TaskErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


def _error_kind(error: RecurrenceError) -> TaskErrorKind:
    if error.kind == RecurrenceErrorKind.INVALID_DATE_FORMAT:
        return TaskErrorKind.BAD_DATE
    return TaskErrorKind.BAD_RULE


class TaskService:
    """Create, update, find, complete and delete tasks."""

    def __init__(
        self,
        storage: Storage,
        config: Optional[ConfigModel] = None,
        today: Callable[[], date] = local_today,
    ):
        self.storage = storage
        self.config = config or storage.config
        self.today = today

    def _normalize(self, task: Task) -> None:
        """Validate a task and move its date out of the past."""
        task.title = (task.title or "").strip()
        if not task.title:
            raise TaskError(TaskErrorKind.BAD_TITLE, "task title is required")
        reason = unstorable_title_reason(task.title)
        if reason:
            raise TaskError(TaskErrorKind.BAD_TITLE, reason)

        now = self.today()
        now_text = format_compact_date(now)

        if not task.date:
            task.date = now_text

        try:
            due = parse_task_date(task.date)
        except RecurrenceError as e:
            raise TaskError(TaskErrorKind.BAD_DATE, str(e)) from e

        try:
            parse_rule(task.repeat)
        except RecurrenceError as e:
            raise TaskError(TaskErrorKind.BAD_RULE, str(e)) from e

        if due >= now:
            return

        if not task.repeat:
            logger.debug("Task %s: one-shot date %s is in the past, using today", task.id, task.date)
            task.date = now_text
            return

        try:
            result = next_occurrence(now, task.date, task.repeat)
        except RecurrenceError as e:
            raise TaskError(_error_kind(e), str(e)) from e
        logger.debug("Task %s: rescheduled from %s to %s (%s)", task.id, task.date, result, task.repeat)
        task.date = str(result)

    def create(self, task: Task) -> int:
        """Store a new task and return its ID."""
        self._normalize(task)
        try:
            task_id = self.storage.add_task(task)
        except StorageError as e:
            raise TaskError(TaskErrorKind.STORAGE, str(e)) from e
        logger.info("Created task %d due %s", task_id, task.date)
        return task_id

    def update(self, task: Task) -> None:
        self._normalize(task)
        try:
            updated = self.storage.update_task(task)
        except StorageError as e:
            raise TaskError(TaskErrorKind.STORAGE, str(e)) from e
        if not updated:
            raise TaskError(TaskErrorKind.BAD_ID, f"task {task.id} not found")
        logger.info("Updated task %d", task.id)

    def get(self, task_id: int) -> Task:
        tasks = self.find(TaskFilter(id=task_id))
        return tasks[0]

    def find(self, task_filter: Optional[TaskFilter] = None) -> List[Task]:
        """List tasks.

        A search term in ``search_date_format`` (``DD.MM.YYYY`` by default)
        selects tasks due that day; any other term is a text search. Lookups
        by ID fail with ``BAD_ID`` when nothing matches.
        """
        task_filter = replace(task_filter) if task_filter else TaskFilter()

        if task_filter.id is None:
            task_filter.limit = self.config.search_limit
            if task_filter.search:
                day = parse_display_date(task_filter.search, self.config.search_date_format)
                if day is not None:
                    task_filter.date = format_compact_date(day)
                    task_filter.search = ""

        try:
            tasks = self.storage.find_tasks(task_filter)
        except StorageError as e:
            raise TaskError(TaskErrorKind.STORAGE, str(e)) from e

        if task_filter.id is not None and not tasks:
            raise TaskError(TaskErrorKind.BAD_ID, f"task {task_filter.id} not found")
        return tasks

    def done(self, task_id: int) -> Optional[Task]:
        """Complete a task.

        Returns:
            The rescheduled task, or None if the task had no further
            occurrences and was deleted
        """
        task = self.get(task_id)

        try:
            result = next_occurrence(self.today(), task.date, task.repeat)
        except RecurrenceError as e:
            raise TaskError(_error_kind(e), str(e)) from e

        if isinstance(result, Terminate):
            self.delete(task_id)
            return None

        task.date = str(result)
        try:
            self.storage.update_task(task)
        except StorageError as e:
            raise TaskError(TaskErrorKind.STORAGE, str(e)) from e
        logger.info("Task %d done, next due %s", task_id, task.date)
        return task

    def delete(self, task_id: int) -> None:
        try:
            deleted = self.storage.delete_task(task_id)
        except StorageError as e:
            raise TaskError(TaskErrorKind.STORAGE, str(e)) from e
        if not deleted:
            raise TaskError(TaskErrorKind.BAD_ID, f"task {task_id} not found")
        logger.info("Deleted task %d", task_id)
