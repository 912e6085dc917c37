"""Storage layer for Todo Scheduler using a markdown file with YAML frontmatter."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import frontmatter
import yaml

from .config import ConfigModel
from .task import Task, TaskFilter

logger = logging.getLogger(__name__)


# ID comment handling utilities
ID_COMMENT_RE = re.compile(r"<!--\s*id\s*:\s*(\d+)\s*-->")
ID_COMMENT_STRIP_RE = re.compile(r"\s*<!--\s*id\s*:\s*\d+\s*-->")
TASK_LINE_RE = re.compile(r"^- \[ \]\s+")
COMMENT_LINE_RE = re.compile(r"^  -(?: (.*))?$")
END_MARKER = "<!-- end of tasks -->"
TASK_BODY_RE = re.compile(
    r"^(?P<title>.*?)(?:\s+!(?P<date>\d{8}))?(?:\s+%\{(?P<repeat>[^}]*)\})?$"
)


class StorageError(Exception):
    """Raised when the task file cannot be read or written."""


def unstorable_title_reason(title: str) -> Optional[str]:
    """Why a title cannot be written to a single task line, or None if it can."""
    if "\n" in title or "\r" in title:
        return "title must be a single line"
    if ID_COMMENT_RE.search(title):
        return "title must not contain an id comment"
    return None


def extract_last_id_and_strip(text: str) -> Tuple[Optional[int], str]:
    """Extract the last ID comment and strip all ID comments from text.

    Args:
        text: Text that may contain ID comments

    Returns:
        Tuple of (last_id, cleaned_text) where:
        - last_id is the numeric value of the last ID comment, or None if no IDs
        - cleaned_text is the text with all ID comments and their leading
          whitespace removed, trimmed at both ends
    """
    ids = ID_COMMENT_RE.findall(text)
    cleaned = ID_COMMENT_STRIP_RE.sub("", text).strip()
    return (int(ids[-1]) if ids else None, cleaned)


class TaskMarkdownFormat:
    """Handles conversion between Task objects and markdown lines.

    A task renders as ``- [ ] Title !YYYYMMDD %{rule} <!-- id:N -->``; each
    line of its comment follows as an indented ``  - `` sub-item.
    """

    @staticmethod
    def to_markdown(task: Task) -> str:
        reason = unstorable_title_reason(task.title)
        if reason:
            raise StorageError(f"cannot store task {task.id}: {reason}")

        task_line = f"- [ ] {task.title}"

        if task.date:
            task_line += f" !{task.date}"

        if task.repeat:
            task_line += f" %{{{task.repeat}}}"

        task_line += f" <!-- id:{task.id} -->"

        if task.comment:
            lines = [task_line]
            lines.extend(f"  - {line}" for line in task.comment.split("\n"))
            return "\n".join(lines)

        return task_line

    @staticmethod
    def from_markdown(line: str, line_id: Optional[int] = None) -> Optional[Task]:
        """Parse a task line (without its comment sub-items)."""
        line = line.rstrip()
        if not TASK_LINE_RE.match(line):
            return None

        line = TASK_LINE_RE.sub("", line, count=1)
        parsed_id, line = extract_last_id_and_strip(line)
        task_id = parsed_id or (line_id or 1)

        m = TASK_BODY_RE.match(line)
        return Task(
            id=task_id,
            title=m.group("title").strip(),
            date=m.group("date") or "",
            repeat=m.group("repeat") or "",
        )


class TaskFileFormat:
    """Handles conversion between the task list and the task file."""

    @staticmethod
    def to_markdown(tasks: List[Task], metadata: Dict[str, Any]) -> str:
        content_lines = [f"# {metadata.get('title', 'Tasks')}", ""]
        for task in sorted(tasks, key=lambda t: (t.date, t.id)):
            content_lines.append(TaskMarkdownFormat.to_markdown(task))
        # Keeps a trailing empty comment line from being trimmed as file whitespace
        content_lines.extend(["", END_MARKER])

        post = frontmatter.Post("\n".join(content_lines) + "\n", **metadata)
        return frontmatter.dumps(post)

    @staticmethod
    def from_markdown(content: str) -> Tuple[Dict[str, Any], List[Task]]:
        post = frontmatter.loads(content)

        tasks: List[Task] = []
        comment_lines: List[str] = []
        todo_id_counter = 1

        def flush_comment():
            if tasks and comment_lines:
                tasks[-1].comment = "\n".join(comment_lines)
            comment_lines.clear()

        for line in post.content.split("\n"):
            task = TaskMarkdownFormat.from_markdown(line, todo_id_counter)
            if task:
                flush_comment()
                tasks.append(task)
                todo_id_counter = max(todo_id_counter, task.id) + 1
                continue

            m = COMMENT_LINE_RE.match(line)
            if m and tasks:
                comment_lines.append(m.group(1) or "")

        flush_comment()
        return dict(post.metadata), tasks


class Storage:
    """File-based task storage."""

    def __init__(self, config: ConfigModel):
        self.config = config
        self.path = config.get_tasks_path()
        self._ensure_directories()

    def _ensure_directories(self):
        Path(self.config.data_dir).mkdir(parents=True, exist_ok=True)

    def load(self) -> Tuple[Dict[str, Any], List[Task]]:
        """Load the task file's metadata and tasks."""
        if not self.path.exists():
            return {"title": "Tasks", "next_id": 1}, []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
            return TaskFileFormat.from_markdown(content)
        except (OSError, yaml.YAMLError, UnicodeDecodeError) as e:
            logger.error("Error loading tasks from %s: %s", self.path, e)
            raise StorageError(f"cannot read {self.path}: {e}") from e

    def save(self, tasks: List[Task], metadata: Optional[Dict[str, Any]] = None) -> None:
        """Write all tasks back to the task file."""
        ids = [t.id for t in tasks]
        if len(ids) != len(set(ids)):
            raise StorageError(f"Duplicate task IDs detected: {sorted(ids)}")

        metadata = dict(metadata or {"title": "Tasks"})
        metadata["next_id"] = max([metadata.get("next_id", 1)] + [i + 1 for i in ids])
        content = TaskFileFormat.to_markdown(tasks, metadata)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.error("Error saving tasks to %s: %s", self.path, e)
            raise StorageError(f"cannot write {self.path}: {e}") from e

        logger.debug("Saved %d tasks to %s", len(tasks), self.path)

    def get_all_tasks(self) -> List[Task]:
        _, tasks = self.load()
        return tasks

    def get_next_task_id(self) -> int:
        metadata, tasks = self.load()
        return max([int(metadata.get("next_id", 1))] + [t.id + 1 for t in tasks])

    def get_task(self, task_id: int) -> Optional[Task]:
        """Get a specific task by ID, or None if it doesn't exist."""
        for task in self.get_all_tasks():
            if task.id == task_id:
                return task
        return None

    def add_task(self, task: Task) -> int:
        """Add a new task, assigning it the next free ID.

        Returns:
            ID of the added task
        """
        metadata, tasks = self.load()
        task.id = max([int(metadata.get("next_id", 1))] + [t.id + 1 for t in tasks])
        tasks.append(task)
        self.save(tasks, metadata)
        return task.id

    def update_task(self, task: Task) -> bool:
        """Replace an existing task. Returns False if the ID is unknown."""
        metadata, tasks = self.load()
        for i, existing in enumerate(tasks):
            if existing.id == task.id:
                tasks[i] = task
                self.save(tasks, metadata)
                return True
        return False

    def delete_task(self, task_id: int) -> bool:
        """Delete a task. Returns False if the ID is unknown."""
        metadata, tasks = self.load()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            return False
        self.save(remaining, metadata)
        return True

    def find_tasks(self, task_filter: TaskFilter) -> List[Task]:
        """Select tasks ordered by date.

        Text search is a case-insensitive substring match on title and comment.
        """
        tasks = self.get_all_tasks()

        if task_filter.id is not None:
            tasks = [t for t in tasks if t.id == task_filter.id]
        elif task_filter.date:
            tasks = [t for t in tasks if t.date == task_filter.date]
        elif task_filter.search:
            term = task_filter.search.lower()
            tasks = [t for t in tasks if term in t.title.lower() or term in t.comment.lower()]

        tasks.sort(key=lambda t: (t.date, t.id))
        if task_filter.limit is not None:
            tasks = tasks[: task_filter.limit]
        return tasks


# Global storage instance
_storage_instance: Optional[Storage] = None


def get_storage() -> Storage:
    """Get the global storage instance.

    Returns:
        Storage instance initialized with current config
    """
    global _storage_instance

    if _storage_instance is None:
        from .config import get_config
        _storage_instance = Storage(get_config())

    return _storage_instance


def reset_storage() -> None:
    """Reset the global storage instance (useful for testing)."""
    global _storage_instance
    _storage_instance = None
