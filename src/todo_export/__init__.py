"""Todo Export - multi-format export engine for personal task lists."""

__version__ = "0.1.0"
__author__ = "Todo Export Team"

from .todo import Task
from .exceptions import (
    TodoExportError,
    UnsupportedFormatError,
    DeliveryError,
    StorageError,
    TaskValidationError,
    ConfigError,
)
from .export import (
    ExportFormat,
    ExportOptions,
    ExportResult,
    ExportManager,
    ExportStats,
    BatchExportReport,
    filter_tasks,
    export_tasks,
)

__all__ = [
    "Task",
    "TodoExportError",
    "UnsupportedFormatError",
    "DeliveryError",
    "StorageError",
    "TaskValidationError",
    "ConfigError",
    "ExportFormat",
    "ExportOptions",
    "ExportResult",
    "ExportManager",
    "ExportStats",
    "BatchExportReport",
    "filter_tasks",
    "export_tasks",
    "__version__",
]
