"""Tests for the format renderers."""

import json
from datetime import datetime, timezone

import pytest

from todo_export.export import (
    CSVExporter,
    ExportFormat,
    ExportOptions,
    ICalExporter,
    JSONExporter,
    MarkdownExporter,
    filter_tasks,
)
from todo_export.todo import Task

from conftest import FROZEN_NOW, fixed_formatter


def make_tasks(count, completed_every=2, due_every=3):
    """Build a mixed collection in creation order."""
    tasks = []
    for i in range(1, count + 1):
        tasks.append(Task(
            id=i,
            title=f"Task {i}",
            completed=(i % completed_every == 0),
            created_at=datetime(2025, 1, i, 8, 0, tzinfo=timezone.utc),
            due_date=datetime(2025, 2, i, 12, 0, tzinfo=timezone.utc) if i % due_every == 0 else None,
        ))
    return tasks


ALL_EXPORTERS = [JSONExporter, CSVExporter, ICalExporter, MarkdownExporter]


class TestFilterTasks:
    """Test the shared completed-task filter."""

    def test_include_completed_keeps_everything(self, sample_tasks):
        assert filter_tasks(sample_tasks, True) == sample_tasks

    def test_exclude_completed_preserves_order(self):
        tasks = make_tasks(7)
        filtered = filter_tasks(tasks, False)

        assert [t.id for t in filtered] == [1, 3, 5, 7]
        assert all(not t.completed for t in filtered)

    def test_does_not_mutate_input(self, sample_tasks):
        original = list(sample_tasks)
        filter_tasks(sample_tasks, False)
        assert sample_tasks == original


class TestJSONExporter:
    """Test the structured-data renderer."""

    def render(self, tasks, **kwargs):
        options = ExportOptions(format=ExportFormat.JSON, **kwargs)
        return JSONExporter(fixed_formatter).export_tasks(tasks, options, FROZEN_NOW)

    def test_envelope(self, sample_tasks):
        data = json.loads(self.render(sample_tasks))

        assert list(data.keys()) == ["exportDate", "totalTodos", "todos"]
        assert data["exportDate"] == "2025-01-15T09:30:00.123Z"
        assert data["totalTodos"] == 2

    def test_records(self, sample_tasks):
        data = json.loads(self.render(sample_tasks))
        first, second = data["todos"]

        assert first == {
            "id": 1,
            "title": "Buy milk",
            "completed": False,
            "dueDate": "2025-01-10T18:00:00.000Z",
            "createdAt": "2025-01-01T00:00:00.000Z",
        }
        assert list(first.keys()) == ["id", "title", "completed", "dueDate", "createdAt"]
        assert second == {
            "id": 2,
            "title": "Pay rent",
            "completed": True,
            "createdAt": "2025-01-02T00:00:00.000Z",
        }

    def test_due_date_key_omitted_not_null(self, sample_tasks):
        payload = self.render(sample_tasks)
        assert "null" not in payload
        assert payload.count('"dueDate"') == 1

    def test_no_due_dates_at_all_when_disabled(self):
        payload = self.render(make_tasks(9), include_due_dates=False)
        assert "dueDate" not in payload

    def test_indented_and_unicode_verbatim(self):
        task = Task(id=5, title="买牛奶", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        payload = self.render([task])

        assert '\n  "exportDate"' in payload
        assert "买牛奶" in payload

    def test_exclude_completed_counts_filtered(self, sample_tasks):
        data = json.loads(self.render(sample_tasks, include_completed=False))

        assert data["totalTodos"] == 1
        assert [t["id"] for t in data["todos"]] == [1]


class TestCSVExporter:
    """Test the tabular renderer."""

    def render(self, tasks, **kwargs):
        options = ExportOptions(format=ExportFormat.CSV, **kwargs)
        return CSVExporter(fixed_formatter).export_tasks(tasks, options, FROZEN_NOW)

    def test_scenario_output(self, sample_tasks):
        assert self.render(sample_tasks) == (
            '标题,状态,创建时间,截止时间\n'
            '"Buy milk",未完成,"2025-01-01 00:00","2025-01-10 18:00"\n'
            '"Pay rent",已完成,"2025-01-02 00:00",无'
        )

    def test_without_due_dates(self, sample_tasks):
        lines = self.render(sample_tasks, include_due_dates=False).split("\n")

        assert lines[0] == "标题,状态,创建时间"
        assert lines[1] == '"Buy milk",未完成,"2025-01-01 00:00"'

    @pytest.mark.parametrize("include_due_dates", [True, False])
    def test_column_count_consistent(self, include_due_dates):
        lines = self.render(make_tasks(10), include_due_dates=include_due_dates).split("\n")
        expected = 4 if include_due_dates else 3

        assert len(lines) == 11
        # Titles contain no commas, so a plain split counts columns
        assert {len(line.split(",")) for line in lines} == {expected}

    def test_quotes_doubled(self):
        task = Task(id=1, title='Read "Dune", again', created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        row = self.render([task], include_due_dates=False).split("\n")[1]

        assert row.startswith('"Read ""Dune"", again",')

    def test_empty_collection_is_header_only(self):
        assert self.render([]) == "标题,状态,创建时间,截止时间"


class TestICalExporter:
    """Test the calendar renderer."""

    def render(self, tasks, **kwargs):
        options = ExportOptions(format=ExportFormat.ICAL, **kwargs)
        return ICalExporter(fixed_formatter).export_tasks(tasks, options, FROZEN_NOW)

    def test_scenario_output(self, sample_tasks):
        lines = self.render(sample_tasks).split("\r\n")

        assert lines == [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//Todo App//Todo Export//CN",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            "BEGIN:VTODO",
            "UID:todo-1@todoapp.local",
            "DTSTAMP:20250115T093000Z",
            "CREATED:20250101T000000Z",
            "SUMMARY:Buy milk",
            "STATUS:NEEDS-ACTION",
            "PRIORITY:5",
            "DUE:20250110T180000Z",
            "PERCENT-COMPLETE:0",
            "END:VTODO",
            "BEGIN:VTODO",
            "UID:todo-2@todoapp.local",
            "DTSTAMP:20250115T093000Z",
            "CREATED:20250102T000000Z",
            "SUMMARY:Pay rent",
            "STATUS:COMPLETED",
            "PRIORITY:5",
            "COMPLETED:20250102T000000Z",
            "PERCENT-COMPLETE:100",
            "END:VTODO",
            "END:VCALENDAR",
        ]

    def test_only_crlf_line_endings(self, sample_tasks):
        payload = self.render(sample_tasks)
        assert "\n" not in payload.replace("\r\n", "")

    @pytest.mark.parametrize("include_completed", [True, False])
    def test_block_pairs(self, include_completed):
        tasks = make_tasks(8)
        lines = self.render(tasks, include_completed=include_completed).split("\r\n")
        expected = len(filter_tasks(tasks, include_completed))

        assert lines.count("BEGIN:VCALENDAR") == 1
        assert lines.count("END:VCALENDAR") == 1
        assert lines.count("BEGIN:VTODO") == expected
        assert lines.count("END:VTODO") == expected

    def test_due_omitted_when_disabled(self, sample_tasks):
        assert "DUE:" not in self.render(sample_tasks, include_due_dates=False)

    def test_summary_newlines_escaped(self):
        task = Task(id=3, title="line one\nline two", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert "SUMMARY:line one\\nline two\r\n" in self.render([task])

    def test_timestamps_converted_to_utc(self):
        from datetime import timedelta
        plus_eight = timezone(timedelta(hours=8))
        task = Task(
            id=4,
            title="Call home",
            created_at=datetime(2025, 1, 1, 8, 0, tzinfo=plus_eight),
            due_date=datetime(2025, 1, 2, 2, 30, tzinfo=plus_eight),
        )
        payload = self.render([task])

        assert "CREATED:20250101T000000Z" in payload
        assert "DUE:20250101T183000Z" in payload


class TestMarkdownExporter:
    """Test the document renderer."""

    def render(self, tasks, **kwargs):
        options = ExportOptions(format=ExportFormat.MARKDOWN, **kwargs)
        return MarkdownExporter(fixed_formatter).export_tasks(tasks, options, FROZEN_NOW)

    def test_scenario_output(self, sample_tasks):
        assert self.render(sample_tasks) == (
            "# 待办事项导出\n\n"
            "导出时间：2025-01-15 09:30\n"
            "总计：2 项任务\n\n"
            "## 未完成任务 (1)\n\n"
            "- [ ] Buy milk ⏰ 2025-01-10 18:00\n"
            "\n"
            "## 已完成任务 (1)\n\n"
            "- [x] Pay rent\n"
        )

    def test_pending_listed_first_order_preserved(self):
        tasks = make_tasks(6, due_every=100)
        payload = self.render(tasks)

        pending_section, completed_section = payload.split("## 已完成任务")
        assert pending_section.index("Task 1") < pending_section.index("Task 3") < pending_section.index("Task 5")
        assert completed_section.index("Task 2") < completed_section.index("Task 4") < completed_section.index("Task 6")

    def test_partition_counts_sum_to_total(self):
        tasks = make_tasks(9)
        payload = self.render(tasks)

        assert "## 未完成任务 (5)" in payload
        assert "## 已完成任务 (4)" in payload
        assert "总计：9 项任务" in payload
        for task in tasks:
            assert payload.count(f"] {task.title}\n") + payload.count(f"] {task.title} ⏰") == 1

    def test_completed_section_absent_when_excluded(self, sample_tasks):
        payload = self.render(sample_tasks, include_completed=False)

        assert "已完成任务" not in payload
        assert "Pay rent" not in payload
        assert "总计：1 项任务" in payload

    def test_due_marker_omitted_when_disabled(self, sample_tasks):
        assert "⏰" not in self.render(sample_tasks, include_due_dates=False)

    def test_empty_collection(self):
        assert self.render([]) == "# 待办事项导出\n\n导出时间：2025-01-15 09:30\n总计：0 项任务\n\n"


@pytest.mark.parametrize("exporter_class", ALL_EXPORTERS)
def test_every_renderer_drops_completed_tasks(exporter_class):
    tasks = make_tasks(6)
    tasks[1] = Task(id=2, title="Secret finished chore", completed=True)
    fmt = {
        JSONExporter: ExportFormat.JSON,
        CSVExporter: ExportFormat.CSV,
        ICalExporter: ExportFormat.ICAL,
        MarkdownExporter: ExportFormat.MARKDOWN,
    }[exporter_class]
    options = ExportOptions(format=fmt, include_completed=False)

    payload = exporter_class(fixed_formatter).export_tasks(tasks, options, FROZEN_NOW)

    assert "Secret finished chore" not in payload
    for task in tasks:
        if not task.completed:
            assert task.title in payload
