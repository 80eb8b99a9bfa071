"""Command-line interface for Todo Export."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import ConfigModel, get_config, load_config
from .exceptions import ConfigError, TodoExportError
from .export import ExportFormat, ExportManager, ExportOptions, ExportStats, count_exportable
from .sinks import FileSink, StdoutSink
from .storage import TaskStore
from .todo import Task
from .utils.datetime import LocaleDateFormatter


console = Console()
err_console = Console(stderr=True)

FORMAT_CHOICES = [fmt.value for fmt in ExportFormat]


def setup_logging(level: int) -> None:
    """Route log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def get_manager(config: ConfigModel) -> ExportManager:
    """Build an export manager using the configured time zone."""
    try:
        formatter = LocaleDateFormatter(config.timezone)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    return ExportManager(formatter=formatter)


def load_tasks(config: ConfigModel, tasks_file: Optional[str], user_id: Optional[str]) -> List[Task]:
    store = TaskStore(tasks_file or config.tasks_file)
    return store.load_tasks(user_id=user_id)


def fail(message: str) -> None:
    err_console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, config_path, verbose):
    """Todo Export - export your task list to JSON, CSV, iCal or Markdown."""
    ctx.ensure_object(dict)

    try:
        config = load_config(Path(config_path)) if config_path else get_config()
    except ConfigError as e:
        setup_logging(logging.WARNING)
        fail(str(e))

    setup_logging(logging.DEBUG if verbose else config.get_log_level())
    ctx.obj['config'] = config
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument("format_type", type=click.Choice(FORMAT_CHOICES), required=False)
@click.option("--tasks", "-t", "tasks_file", type=click.Path(dir_okay=False), help="Task file (JSON or YAML)")
@click.option("--user", "user_id", help="Only export tasks owned by this user id")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), help="Directory to write the export to")
@click.option("--filename", "-f", help="Base filename (extension is added automatically)")
@click.option("--no-completed", "exclude_completed", is_flag=True, help="Exclude completed tasks")
@click.option("--no-due-dates", "exclude_due_dates", is_flag=True, help="Leave due dates out of the export")
@click.option("--stdout", "to_stdout", is_flag=True, help="Write the export to stdout instead of a file")
@click.pass_context
def export(ctx, format_type, tasks_file, user_id, output_dir, filename, exclude_completed, exclude_due_dates, to_stdout):
    """Export tasks in a single format.

    FORMAT defaults to the configured default_format.

    Examples:
      todo-export export json
      todo-export export csv --no-completed -o ~/exports
      todo-export export ical --stdout > tasks.ics
    """
    config: ConfigModel = ctx.obj['config']

    format_type = format_type or config.default_format.value
    include_completed = config.include_completed and not exclude_completed
    include_due_dates = config.include_due_dates and not exclude_due_dates

    try:
        manager = get_manager(config)
        tasks = load_tasks(config, tasks_file, user_id)
        options = ExportOptions(
            format=ExportFormat(format_type),
            include_completed=include_completed,
            include_due_dates=include_due_dates,
            filename=filename,
        )

        if not tasks:
            err_console.print("[yellow]No tasks found to export.[/yellow]")
            return

        if to_stdout:
            manager.export(tasks, options, StdoutSink())
            return

        sink = FileSink(output_dir or config.export_dir)
        console.print(
            f"[blue]🔄 Exporting {count_exportable(tasks, include_completed)} tasks "
            f"to {format_type.upper()}...[/blue]"
        )
        result = manager.export(tasks, options, sink)
    except TodoExportError as e:
        fail(str(e))

    console.print(f"[green]✅ Successfully exported to {sink.written[-1]}[/green]")
    console.print(f"[dim]{result.mime_type}, {result.task_count} tasks[/dim]")


@main.command()
@click.option("--tasks", "-t", "tasks_file", type=click.Path(dir_okay=False), help="Task file (JSON or YAML)")
@click.option("--user", "user_id", help="Only export tasks owned by this user id")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), help="Directory to write the backup to")
@click.option("--name", "-n", "base_name", help="Shared base filename (the date is appended)")
@click.pass_context
def batch(ctx, tasks_file, user_id, output_dir, base_name):
    """Export every format at once as a complete backup."""
    config: ConfigModel = ctx.obj['config']

    try:
        manager = get_manager(config)
        tasks = load_tasks(config, tasks_file, user_id)
    except TodoExportError as e:
        fail(str(e))

    if not tasks:
        console.print("[yellow]No tasks found to export.[/yellow]")
        return

    sink = FileSink(output_dir or config.export_dir)
    report = manager.batch_export(tasks, sink, base_name=base_name or config.batch_base_name)

    table = Table(title="Batch Export")
    table.add_column("Format", style="cyan")
    table.add_column("File")
    table.add_column("Result")

    for result in report.results:
        table.add_row(result.format.value, result.filename, "[green]✅ saved[/green]")
    for export_format, error in report.failures.items():
        table.add_row(export_format.value, error.filename, f"[red]❌ {error.cause or error}[/red]")

    console.print(table)
    console.print(f"[dim]📁 {sink.directory}[/dim]")

    if not report.succeeded:
        sys.exit(1)


@main.command()
def formats():
    """List supported export formats."""
    manager = ExportManager()

    table = Table(title="Export Formats")
    table.add_column("Format", style="cyan", no_wrap=True)
    table.add_column("Extension", no_wrap=True)
    table.add_column("MIME Type", no_wrap=True)
    table.add_column("Description", overflow="fold")

    for export_format in ExportFormat:
        table.add_row(
            export_format.value,
            manager.get_file_extension(export_format),
            manager.get_mime_type(export_format),
            manager.get_format_description(export_format),
        )

    console.print(table)


@main.command()
@click.option("--tasks", "-t", "tasks_file", type=click.Path(dir_okay=False), help="Task file (JSON or YAML)")
@click.option("--user", "user_id", help="Only count tasks owned by this user id")
@click.pass_context
def stats(ctx, tasks_file, user_id):
    """Show what an export would contain."""
    config: ConfigModel = ctx.obj['config']

    try:
        tasks = load_tasks(config, tasks_file, user_id)
    except TodoExportError as e:
        fail(str(e))

    task_stats = ExportStats.from_tasks(tasks)
    body = (
        f"Total: {task_stats.total}\n"
        f"Completed: [green]{task_stats.completed}[/green]\n"
        f"Pending: [yellow]{task_stats.pending}[/yellow]\n"
        f"With due date: [blue]{task_stats.with_due_date}[/blue]\n"
        f"Overdue: [red]{task_stats.overdue}[/red]"
    )
    console.print(Panel(body, title="📊 Export Stats", expand=False))


if __name__ == "__main__":
    main()
