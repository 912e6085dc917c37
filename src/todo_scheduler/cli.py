"""Command-line interface for Todo Scheduler."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import get_config, load_config
from .recurring import RecurrenceError, next_date_text, parse_task_date
from .services import TaskError, TaskService
from .storage import get_storage
from .task import Task, TaskFilter
from .utils.datetime import today


console = Console()


def get_service() -> TaskService:
    """Get a task service over the configured storage."""
    config = get_config()
    return TaskService(get_storage(), config)


def fail(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


def format_date(date_text: str) -> str:
    """Render a stored YYYYMMDD date in the configured display format."""
    try:
        return parse_task_date(date_text).strftime(get_config().display_date_format)
    except RecurrenceError:
        return date_text


def render_task(task: Task) -> None:
    console.print(f"[dim]{task.id}[/dim] [bold]{escape(task.title)}[/bold]")
    console.print(f"  Due: [blue]{format_date(task.date)}[/blue]")
    if task.repeat:
        console.print(f"  Repeat: [magenta]{task.repeat}[/magenta]")
    if task.comment:
        console.print(f"  Comment: {escape(task.comment)}")


def validate_compact_date(ctx, param, value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    try:
        parse_task_date(value)
    except RecurrenceError:
        raise click.BadParameter("expected a date as YYYYMMDD")
    return value


@click.group()
@click.option("--config", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def main(config, verbose):
    """Todo Scheduler - to-do tasks with repeat rules."""
    if config:
        cfg = load_config(Path(config))
    else:
        cfg = get_config()

    if cfg.no_color:
        console.no_color = True

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.option("--date", "date_text", required=True, callback=validate_compact_date,
              help="Last scheduled date (YYYYMMDD)")
@click.option("--now", "now_text", callback=validate_compact_date,
              help="Current date (YYYYMMDD), defaults to today")
@click.option("--repeat", "-r", default="", help='Repeat rule, e.g. "d 7", "y", "w 1,3", "m -1 2"')
def nextdate(date_text, now_text, repeat):
    """Print the next due date for DATE under a repeat rule.

    Prints "delete" when the rule is empty.
    """
    now = parse_task_date(now_text) if now_text else today()
    try:
        click.echo(next_date_text(now, date_text, repeat))
    except RecurrenceError as e:
        fail(str(e))


@main.command()
@click.argument("title")
@click.option("--date", "-d", "date_text", default="", help="Due date (YYYYMMDD), defaults to today")
@click.option("--comment", "-c", default="", help="Free-form comment")
@click.option("--repeat", "-r", default="", help="Repeat rule")
def add(title, date_text, comment, repeat):
    """Add a new task."""
    task = Task(id=0, title=title, date=date_text, comment=comment, repeat=repeat)
    try:
        task_id = get_service().create(task)
    except TaskError as e:
        fail(str(e))
    console.print(f"[green]Added task {task_id}: {escape(task.title)} (due {format_date(task.date)})[/green]")


@main.command("list")
@click.option("--search", "-s", default="", help="Text to look for, or a date as DD.MM.YYYY")
def list_tasks(search):
    """List upcoming tasks."""
    try:
        tasks = get_service().find(TaskFilter(search=search))
    except TaskError as e:
        fail(str(e))

    if not tasks:
        console.print("[yellow]No tasks found.[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Due", style="blue")
    table.add_column("Title", style="bold")
    table.add_column("Repeat", style="magenta")
    table.add_column("Comment")
    for task in tasks:
        table.add_row(str(task.id), format_date(task.date), escape(task.title), task.repeat, escape(task.comment))
    console.print(table)


@main.command()
@click.argument("task_id", type=int)
def show(task_id):
    """Show one task."""
    try:
        task = get_service().get(task_id)
    except TaskError as e:
        fail(str(e))
    render_task(task)


@main.command()
@click.argument("task_id", type=int)
@click.option("--title", "-t", help="New title")
@click.option("--date", "-d", "date_text", help="New due date (YYYYMMDD)")
@click.option("--comment", "-c", help="New comment")
@click.option("--repeat", "-r", help='New repeat rule ("" to stop repeating)')
def edit(task_id, title, date_text, comment, repeat):
    """Edit a task."""
    service = get_service()
    try:
        task = service.get(task_id)
        if title is not None:
            task.title = title
        if date_text is not None:
            task.date = date_text
        if comment is not None:
            task.comment = comment
        if repeat is not None:
            task.repeat = repeat
        service.update(task)
    except TaskError as e:
        fail(str(e))
    console.print(f"[green]Updated task {task_id}[/green]")
    render_task(task)


@main.command()
@click.argument("task_id", type=int)
def done(task_id):
    """Mark a task done: reschedule it, or delete it if it doesn't repeat."""
    try:
        task = get_service().done(task_id)
    except TaskError as e:
        fail(str(e))
    if task is None:
        console.print(f"[green]Task {task_id} completed and removed[/green]")
    else:
        console.print(f"[green]Task {task_id} done, next due {format_date(task.date)}[/green]")


@main.command()
@click.argument("task_id", type=int)
def delete(task_id):
    """Delete a task."""
    try:
        get_service().delete(task_id)
    except TaskError as e:
        fail(str(e))
    console.print(f"[green]Deleted task {task_id}[/green]")


if __name__ == "__main__":
    main()
