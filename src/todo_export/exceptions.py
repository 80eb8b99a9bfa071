"""Exception hierarchy for Todo Export."""

from typing import Any, Optional


class TodoExportError(Exception):
    """Base exception for all export operations."""
    pass


class UnsupportedFormatError(TodoExportError):
    """Raised when an export format tag has no matching renderer."""

    def __init__(self, format: Any):
        self.format = format
        super().__init__(f"Export format {format!r} not supported")


class DeliveryError(TodoExportError):
    """The delivery sink failed to persist a rendered payload."""

    def __init__(self, filename: str, cause: Optional[BaseException] = None):
        self.filename = filename
        self.cause = cause
        message = f"Failed to deliver {filename}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class StorageError(TodoExportError):
    """Task data could not be read."""
    pass


class TaskValidationError(TodoExportError):
    """A task record is missing required data."""
    pass


class ConfigError(TodoExportError):
    """Configuration could not be loaded or saved."""
    pass
