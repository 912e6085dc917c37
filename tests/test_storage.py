"""Tests for the markdown task store."""

import pytest

from todo_scheduler.storage import (
    Storage,
    StorageError,
    TaskFileFormat,
    TaskMarkdownFormat,
    extract_last_id_and_strip,
)
from todo_scheduler.task import Task, TaskFilter


class TestTaskMarkdownFormat:
    """Tests for single task lines."""

    def test_render_full_task(self):
        """Test a task with date and rule renders on one line."""
        task = Task(id=3, title="Pay rent", date="20240101", repeat="m 1")
        assert TaskMarkdownFormat.to_markdown(task) == "- [ ] Pay rent !20240101 %{m 1} <!-- id:3 -->"

    def test_render_comment_as_sub_items(self):
        """Test each comment line becomes an indented sub-item."""
        task = Task(id=1, title="Call mum", date="20240101", comment="ask about\nthe weekend")
        assert TaskMarkdownFormat.to_markdown(task).split("\n") == [
            "- [ ] Call mum !20240101 <!-- id:1 -->",
            "  - ask about",
            "  - the weekend",
        ]

    def test_parse_task_line(self):
        """Test parsing title, date, rule and ID from a task line."""
        task = TaskMarkdownFormat.from_markdown("- [ ] Water plants !20240305 %{w 1,4} <!-- id:7 -->")
        assert task == Task(id=7, title="Water plants", date="20240305", repeat="w 1,4")

    def test_parse_without_repeat(self):
        """Test a task line without a rule parses with an empty rule."""
        task = TaskMarkdownFormat.from_markdown("- [ ] Dentist !20240305 <!-- id:2 -->")
        assert task.title == "Dentist"
        assert task.date == "20240305"
        assert task.repeat == ""

    def test_duplicate_id_comments_use_last_id(self):
        """Test the last ID comment wins when a line carries several."""
        task = TaskMarkdownFormat.from_markdown("- [ ] Check bank !20240101 <!-- id:6 --> <!-- id:1 -->", 99)
        assert task.id == 1
        assert task.title == "Check bank"

    def test_missing_id_uses_line_id(self):
        """Test a line without an ID comment falls back to the line ID."""
        task = TaskMarkdownFormat.from_markdown("- [ ] No id here !20240101", 42)
        assert task.id == 42

    def test_non_task_lines_are_ignored(self):
        """Test headings, sub-items and blank lines are not tasks."""
        assert TaskMarkdownFormat.from_markdown("# Tasks") is None
        assert TaskMarkdownFormat.from_markdown("  - a comment") is None
        assert TaskMarkdownFormat.from_markdown("") is None

    def test_extract_last_id_and_strip(self):
        """Test ID comments are removed without touching inner spacing."""
        assert extract_last_id_and_strip("a <!-- id:1 -->  b <!--id: 2-->") == (2, "a  b")
        assert extract_last_id_and_strip("plain") == (None, "plain")


class TestTaskFileFormat:
    """Tests for the whole task file."""

    def test_comments_attach_to_preceding_task(self):
        """Test comment sub-items attach to the task above them."""
        content = (
            "---\nnext_id: 3\ntitle: Tasks\n---\n"
            "# Tasks\n\n"
            "- [ ] First !20240101 <!-- id:1 -->\n"
            "  - note one\n"
            "  - note two\n"
            "- [ ] Second !20240102 %{y} <!-- id:2 -->\n"
        )
        metadata, tasks = TaskFileFormat.from_markdown(content)

        assert metadata["next_id"] == 3
        assert [t.id for t in tasks] == [1, 2]
        assert tasks[0].comment == "note one\nnote two"
        assert tasks[1].comment == ""
        assert tasks[1].repeat == "y"


class TestStorage:
    """Tests for the Storage API."""

    def test_empty_storage(self, storage):
        """Test a missing file reads as an empty task list."""
        assert storage.get_all_tasks() == []
        assert storage.get_next_task_id() == 1

    def test_add_assigns_ids(self, storage):
        """Test added tasks get sequential IDs."""
        assert storage.add_task(Task(id=0, title="One", date="20240101")) == 1
        assert storage.add_task(Task(id=0, title="Two", date="20240102")) == 2

    def test_ids_are_not_reused_after_delete(self, storage):
        """Test IDs of deleted tasks are not handed out again."""
        storage.add_task(Task(id=0, title="One", date="20240101"))
        storage.add_task(Task(id=0, title="Two", date="20240102"))
        assert storage.delete_task(2)
        assert storage.add_task(Task(id=0, title="Three", date="20240103")) == 3

    def test_save_and_reload(self, storage, config):
        """Test a task survives a save and a fresh load."""
        task = Task(id=0, title="Budget review", date="20240131", comment="bring receipts\nand the laptop", repeat="m -1 1,4,7,10")
        task_id = storage.add_task(task)

        reloaded = Storage(config).get_task(task_id)
        assert reloaded == task

    def test_update_and_delete_unknown(self, storage):
        """Test updating or deleting an unknown ID reports False."""
        assert storage.update_task(Task(id=5, title="Ghost", date="20240101")) is False
        assert storage.delete_task(5) is False

    def test_update(self, storage):
        """Test an update replaces the stored task."""
        task_id = storage.add_task(Task(id=0, title="Old", date="20240101"))
        assert storage.update_task(Task(id=task_id, title="New", date="20240202"))
        assert storage.get_task(task_id).title == "New"

    def test_duplicate_ids_rejected(self, storage):
        """Test saving two tasks with the same ID fails."""
        with pytest.raises(StorageError):
            storage.save([Task(id=1, title="A"), Task(id=1, title="B")])

    def test_unreadable_file(self, storage):
        """Test broken front matter raises StorageError."""
        storage.path.write_text("---\nnext_id: [unclosed\n---\n", encoding="utf-8")
        with pytest.raises(StorageError):
            storage.get_all_tasks()

    def test_file_is_markdown(self, storage):
        """Test the task file is front matter plus markdown task lines."""
        storage.add_task(Task(id=0, title="Stretch", date="20240101", repeat="d 1"))
        text = storage.path.read_text(encoding="utf-8")
        assert text.startswith("---\n")
        assert "- [ ] Stretch !20240101 %{d 1} <!-- id:1 -->" in text

    def test_inner_title_spacing_survives_reload(self, storage, config):
        """Test runs of spaces inside a title are kept on reload."""
        task_id = storage.add_task(Task(id=0, title="Pay  rent   now", date="20240101"))
        assert Storage(config).get_task(task_id).title == "Pay  rent   now"

    def test_trailing_empty_comment_line_survives_reload(self, storage, config):
        """Test a comment ending in a newline keeps its empty last line."""
        first = storage.add_task(Task(id=0, title="Last one", date="20240909", comment="line\n"))
        second = storage.add_task(Task(id=0, title="Earlier", date="20240101", comment="a\n\nb"))

        reloaded = Storage(config)
        assert reloaded.get_task(first).comment == "line\n"
        assert reloaded.get_task(second).comment == "a\n\nb"

    def test_title_with_id_comment_is_refused(self, storage):
        """Test a title holding an ID comment is not written."""
        storage.add_task(Task(id=0, title="Keep me", date="20240101"))
        with pytest.raises(StorageError):
            storage.add_task(Task(id=0, title="see <!-- id:7 --> later", date="20240101"))
        assert [t.title for t in storage.get_all_tasks()] == ["Keep me"]

    def test_multiline_title_is_refused(self, storage):
        """Test a title with a line break is not written."""
        with pytest.raises(StorageError):
            storage.save([Task(id=1, title="two\nlines", date="20240101")])


class TestFindTasks:
    """Tests for task selection."""

    @pytest.fixture
    def populated(self, storage):
        storage.add_task(Task(id=0, title="Renew passport", date="20240310"))
        storage.add_task(Task(id=0, title="Water plants", date="20240302", repeat="d 3"))
        storage.add_task(Task(id=0, title="Call bank", date="20240310", comment="about the PASSPORT fee"))
        return storage

    def test_ordered_by_date(self, populated):
        """Test results are ordered by date, then ID."""
        tasks = populated.find_tasks(TaskFilter())
        assert [t.title for t in tasks] == ["Water plants", "Renew passport", "Call bank"]

    def test_text_search_is_case_insensitive_on_title_and_comment(self, populated):
        """Test text search ignores case and looks at comments too."""
        tasks = populated.find_tasks(TaskFilter(search="passport"))
        assert {t.id for t in tasks} == {1, 3}

    def test_date_filter(self, populated):
        """Test the date filter selects tasks due that day."""
        tasks = populated.find_tasks(TaskFilter(date="20240302"))
        assert [t.title for t in tasks] == ["Water plants"]

    def test_id_filter(self, populated):
        """Test the ID filter selects a single task."""
        assert [t.title for t in populated.find_tasks(TaskFilter(id=3))] == ["Call bank"]

    def test_limit(self, populated):
        """Test the limit caps the result count."""
        assert len(populated.find_tasks(TaskFilter(limit=2))) == 2
