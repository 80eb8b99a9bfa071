"""
Export System for Todo Export

This module renders a task snapshot into JSON, CSV, iCalendar and Markdown,
derives the download filename and MIME type, and hands the payload to a
delivery sink. Rendering is pure: the only inputs are the tasks, the export
options and the instant of the export.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .exceptions import DeliveryError, UnsupportedFormatError
from .sinks import DeliverySink
from .todo import Task
from .utils.datetime import (
    DateFormatter,
    LocaleDateFormatter,
    format_ical_datetime,
    now_utc,
    to_js_iso_string,
)


logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats"""
    JSON = "json"
    CSV = "csv"
    ICAL = "ical"  # iCalendar format
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, value: Union["ExportFormat", str]) -> "ExportFormat":
        """Convert a format tag to an ExportFormat.

        Raises:
            UnsupportedFormatError: If the tag is not one of the known formats
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFormatError(value) from None


@dataclass
class ExportOptions:
    """Options for a single export call."""

    format: ExportFormat
    include_completed: bool = True
    include_due_dates: bool = True
    filename: Optional[str] = None  # Base name without extension

    def __post_init__(self):
        self.format = ExportFormat.parse(self.format)


def filter_tasks(tasks: Iterable[Task], include_completed: bool) -> List[Task]:
    """Drop completed tasks unless they are wanted, preserving order."""
    if include_completed:
        return list(tasks)
    return [task for task in tasks if not task.completed]


class BaseExporter(ABC):
    """Abstract base class for exporters"""

    description: str = ""

    def __init__(self, formatter: Optional[DateFormatter] = None):
        self.formatter = formatter or LocaleDateFormatter()

    def export_tasks(self, tasks: Sequence[Task], options: ExportOptions, now: datetime) -> str:
        """Filter the tasks and render them.

        Args:
            tasks: Task snapshot, in display order
            options: Export options
            now: Instant of the export, read once by the caller
        """
        filtered = filter_tasks(tasks, options.include_completed)
        logger.debug(
            "Rendering %d of %d tasks as %s",
            len(filtered), len(tasks), self.get_file_extension(),
        )
        return self.render(filtered, options, now)

    @abstractmethod
    def render(self, tasks: List[Task], options: ExportOptions, now: datetime) -> str:
        """Render already-filtered tasks to a string payload"""
        pass

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get recommended file extension"""
        pass

    @abstractmethod
    def get_mime_type(self) -> str:
        """Get the MIME type of the payload"""
        pass


class JSONExporter(BaseExporter):
    """Export to JSON format"""

    description = "JSON 数据格式，适用于程序处理和备份"

    def render(self, tasks: List[Task], options: ExportOptions, now: datetime) -> str:
        """Export tasks to JSON.

        ``dueDate`` is present only when due dates are requested and the
        task has one. It is never written as null.
        """
        records = []
        for task in tasks:
            record: Dict[str, Any] = {
                'id': task.id,
                'title': task.title,
                'completed': task.completed,
            }
            if options.include_due_dates and task.due_date:
                record['dueDate'] = to_js_iso_string(task.due_date)
            record['createdAt'] = to_js_iso_string(task.created_at)
            records.append(record)

        export_data = {
            'exportDate': to_js_iso_string(now),
            'totalTodos': len(records),
            'todos': records,
        }

        return json.dumps(export_data, indent=2, ensure_ascii=False)

    def get_file_extension(self) -> str:
        return "json"

    def get_mime_type(self) -> str:
        return "application/json"


class CSVExporter(BaseExporter):
    """Export to CSV format"""

    description = "CSV 表格格式，可在 Excel 等软件中打开"

    HEADERS = ['标题', '状态', '创建时间']
    DUE_HEADER = '截止时间'
    STATUS_COMPLETED = '已完成'
    STATUS_PENDING = '未完成'
    NO_DUE_DATE = '无'

    def render(self, tasks: List[Task], options: ExportOptions, now: datetime) -> str:
        """Export tasks to CSV.

        Rows are joined with ``\\n``. Only double quotes inside the title
        are escaped.
        """
        headers = list(self.HEADERS)
        if options.include_due_dates:
            headers.append(self.DUE_HEADER)

        rows = [','.join(headers)]

        for task in tasks:
            row = [
                self._quote(task.title),
                self.STATUS_COMPLETED if task.completed else self.STATUS_PENDING,
                self._quote(self.formatter(task.created_at)),
            ]

            if options.include_due_dates:
                row.append(self._quote(self.formatter(task.due_date)) if task.due_date else self.NO_DUE_DATE)

            rows.append(','.join(row))

        return '\n'.join(rows)

    @staticmethod
    def _quote(value: str) -> str:
        return '"' + value.replace('"', '""') + '"'

    def get_file_extension(self) -> str:
        return "csv"

    def get_mime_type(self) -> str:
        return "text/csv"


class ICalExporter(BaseExporter):
    """Export to iCalendar format for calendar integration"""

    description = "iCal 日历格式，可导入到日历应用中"

    PRODID = "-//Todo App//Todo Export//CN"
    UID_DOMAIN = "todoapp.local"
    PRIORITY = 5  # no priority in the task model
    LINE_ENDING = "\r\n"

    def render(self, tasks: List[Task], options: ExportOptions, now: datetime) -> str:
        """Export tasks to iCal format, one VTODO per task"""
        dtstamp = format_ical_datetime(now)

        output = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            f"PRODID:{self.PRODID}",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
        ]

        for task in tasks:
            created = format_ical_datetime(task.created_at)

            output.append("BEGIN:VTODO")
            output.append(f"UID:{self.get_uid(task)}")
            output.append(f"DTSTAMP:{dtstamp}")
            output.append(f"CREATED:{created}")
            output.append(f"SUMMARY:{self.escape_text(task.title)}")
            output.append(f"STATUS:{'COMPLETED' if task.completed else 'NEEDS-ACTION'}")
            output.append(f"PRIORITY:{self.PRIORITY}")

            if task.due_date and options.include_due_dates:
                output.append(f"DUE:{format_ical_datetime(task.due_date)}")

            if task.completed:
                # The model has no completion time, so the creation time stands in
                output.append(f"COMPLETED:{created}")
                output.append("PERCENT-COMPLETE:100")
            else:
                output.append("PERCENT-COMPLETE:0")

            output.append("END:VTODO")

        output.append("END:VCALENDAR")
        return self.LINE_ENDING.join(output)

    def get_uid(self, task: Task) -> str:
        """Stable per-task identifier so re-imports update instead of duplicate."""
        return f"todo-{task.id}@{self.UID_DOMAIN}"

    @staticmethod
    def escape_text(value: str) -> str:
        return value.replace("\n", "\\n")

    def get_file_extension(self) -> str:
        return "ics"

    def get_mime_type(self) -> str:
        return "text/calendar"


class MarkdownExporter(BaseExporter):
    """Export to Markdown format"""

    description = "Markdown 文档格式，适合阅读和分享"

    TITLE = "待办事项导出"
    PENDING_HEADING = "未完成任务"
    COMPLETED_HEADING = "已完成任务"
    DUE_MARKER = "⏰"

    def render(self, tasks: List[Task], options: ExportOptions, now: datetime) -> str:
        """Export tasks to Markdown, pending tasks first"""
        completed = [t for t in tasks if t.completed]
        pending = [t for t in tasks if not t.completed]

        output = f"# {self.TITLE}\n\n"
        output += f"导出时间：{self.formatter(now)}\n"
        output += f"总计：{len(tasks)} 项任务\n\n"

        if pending:
            output += f"## {self.PENDING_HEADING} ({len(pending)})\n\n"
            for task in pending:
                output += self._format_line(task, options) + "\n"
            output += "\n"

        if completed and options.include_completed:
            output += f"## {self.COMPLETED_HEADING} ({len(completed)})\n\n"
            for task in completed:
                output += self._format_line(task, options) + "\n"

        return output

    def _format_line(self, task: Task, options: ExportOptions) -> str:
        checkbox = "[x]" if task.completed else "[ ]"
        line = f"- {checkbox} {task.title}"
        if task.due_date and options.include_due_dates:
            line += f" {self.DUE_MARKER} {self.formatter(task.due_date)}"
        return line

    def get_file_extension(self) -> str:
        return "md"

    def get_mime_type(self) -> str:
        return "text/markdown"


@dataclass
class ExportResult:
    """A rendered export ready for delivery."""

    content: str
    filename: str
    mime_type: str
    format: ExportFormat
    task_count: int


@dataclass
class BatchExportReport:
    """Per-format outcome of a batch export."""

    results: List[ExportResult] = field(default_factory=list)
    failures: Dict[ExportFormat, DeliveryError] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def filenames(self) -> List[str]:
        return [result.filename for result in self.results]


@dataclass
class ExportStats:
    """Counts shown before an export."""

    total: int = 0
    completed: int = 0
    pending: int = 0
    with_due_date: int = 0
    overdue: int = 0

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task], now: Optional[datetime] = None) -> "ExportStats":
        now = now or now_utc()
        stats = cls()
        for task in tasks:
            stats.total += 1
            if task.completed:
                stats.completed += 1
            else:
                stats.pending += 1
            if task.has_due_date():
                stats.with_due_date += 1
            if task.is_overdue(now):
                stats.overdue += 1
        return stats


def count_exportable(tasks: Iterable[Task], include_completed: bool) -> int:
    """Number of tasks an export with these settings would contain."""
    return len(filter_tasks(tasks, include_completed))


class ExportManager:
    """Dispatches export calls to the renderer for each format"""

    BATCH_BASE_NAME = "todo-complete-backup"
    DEFAULT_BASE_NAME = "todo-export"

    def __init__(
        self,
        formatter: Optional[DateFormatter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.formatter = formatter or LocaleDateFormatter()
        self.clock = clock or now_utc
        self.exporters: Dict[ExportFormat, BaseExporter] = {
            ExportFormat.JSON: JSONExporter(self.formatter),
            ExportFormat.CSV: CSVExporter(self.formatter),
            ExportFormat.ICAL: ICalExporter(self.formatter),
            ExportFormat.MARKDOWN: MarkdownExporter(self.formatter),
        }

        missing = set(ExportFormat) - set(self.exporters)
        if missing:
            raise TypeError(f"No exporter registered for: {sorted(f.value for f in missing)}")

    def get_exporter(self, format: Union[ExportFormat, str]) -> BaseExporter:
        """Return the exporter for a format tag.

        Raises:
            UnsupportedFormatError: If the format is unknown
        """
        return self.exporters[ExportFormat.parse(format)]

    def render(self, tasks: Sequence[Task], options: ExportOptions, now: Optional[datetime] = None) -> str:
        """Render tasks without delivering them."""
        exporter = self.get_exporter(options.format)
        return exporter.export_tasks(tasks, options, now or self.clock())

    def export(
        self,
        tasks: Sequence[Task],
        options: ExportOptions,
        sink: Optional[DeliverySink] = None,
    ) -> ExportResult:
        """Render tasks, derive filename and MIME type, and deliver.

        The clock is read once so every timestamp in the payload and the
        filename date agree.

        Raises:
            UnsupportedFormatError: If the format is unknown
            DeliveryError: If the sink fails
        """
        exporter = self.get_exporter(options.format)
        now = self.clock()

        content = exporter.export_tasks(tasks, options, now)
        result = ExportResult(
            content=content,
            filename=self.generate_filename(options.format, options.filename, today=now.date()),
            mime_type=exporter.get_mime_type(),
            format=options.format,
            task_count=len(filter_tasks(tasks, options.include_completed)),
        )

        if sink is not None:
            self._deliver(sink, result)

        return result

    def batch_export(
        self,
        tasks: Sequence[Task],
        sink: DeliverySink,
        base_name: Optional[str] = None,
        formats: Optional[Iterable[Union[ExportFormat, str]]] = None,
    ) -> BatchExportReport:
        """Export the same snapshot once per format, sequentially.

        Every export includes completed tasks and due dates. The files share
        ``<base_name>-<ISO-date>`` as base name. A delivery failure is
        recorded and the remaining formats are still attempted.
        """
        export_formats = [ExportFormat.parse(f) for f in (formats or list(ExportFormat))]
        shared_name = f"{base_name or self.BATCH_BASE_NAME}-{self.clock().date().isoformat()}"
        report = BatchExportReport()

        for export_format in export_formats:
            options = ExportOptions(
                format=export_format,
                include_completed=True,
                include_due_dates=True,
                filename=shared_name,
            )
            try:
                report.results.append(self.export(tasks, options, sink))
            except DeliveryError as e:
                logger.error("Batch export of %s failed: %s", export_format.value, e)
                report.failures[export_format] = e

        if report.failures:
            logger.warning(
                "Batch export finished with %d of %d formats failed",
                len(report.failures), len(export_formats),
            )
        return report

    def generate_filename(
        self,
        format: Union[ExportFormat, str],
        custom_name: Optional[str] = None,
        today: Optional[date] = None,
    ) -> str:
        """Build ``<base>.<ext>``, defaulting the base to ``todo-export-<date>``."""
        extension = self.get_file_extension(format)
        base_name = custom_name if custom_name and custom_name.strip() else ""
        if not base_name:
            today = today or self.clock().date()
            base_name = f"{self.DEFAULT_BASE_NAME}-{today.isoformat()}"
        return f"{base_name}.{extension}"

    def get_file_extension(self, format: Union[ExportFormat, str]) -> str:
        """Get recommended file extension for format"""
        return self.get_exporter(format).get_file_extension()

    def get_mime_type(self, format: Union[ExportFormat, str]) -> str:
        return self.get_exporter(format).get_mime_type()

    def get_format_description(self, format: Union[ExportFormat, str]) -> str:
        return self.get_exporter(format).description

    def get_supported_formats(self) -> List[str]:
        """Get list of supported format names"""
        return [fmt.value for fmt in self.exporters.keys()]

    def _deliver(self, sink: DeliverySink, result: ExportResult) -> None:
        try:
            sink.deliver(result.content, result.filename, result.mime_type)
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(result.filename, e) from e
        logger.info("Delivered %s (%s, %d tasks)", result.filename, result.mime_type, result.task_count)


def export_tasks(tasks: Sequence[Task], options: ExportOptions) -> str:
    """Render tasks with the default formatter and current time."""
    return ExportManager().render(tasks, options)
