"""Task data model for the Todo Export engine."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .exceptions import TaskValidationError
from .utils.datetime import now_utc, ensure_aware, to_iso_string, parse_iso_datetime


@dataclass(frozen=True)
class Task:
    """A single task as read from the backend.

    The export engine only reads tasks, so instances are frozen.
    """

    # Core identification
    id: int
    title: str
    content: str = ""  # Rich-text markup, empty means no detail

    # Status
    completed: bool = False

    # Timestamps
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    due_date: Optional[datetime] = None

    def __post_init__(self):
        """Normalize datetime fields to be timezone-aware."""
        # frozen dataclass, so bypass __setattr__
        object.__setattr__(self, "created_at", ensure_aware(self.created_at))
        object.__setattr__(self, "updated_at", ensure_aware(self.updated_at))
        object.__setattr__(self, "due_date", ensure_aware(self.due_date))
        if self.content is None:
            object.__setattr__(self, "content", "")

    def has_due_date(self) -> bool:
        """Check if the task carries a deadline."""
        return self.due_date is not None

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Check if the task is overdue."""
        if self.due_date and not self.completed:
            return (ensure_aware(now) or now_utc()) > self.due_date
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert the Task to the backend record shape."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "completed": self.completed,
            "created_at": to_iso_string(self.created_at),
            "updated_at": to_iso_string(self.updated_at),
            "due_date": to_iso_string(self.due_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a Task from a backend record.

        Unknown keys (``user_id`` and the like) are ignored. Camel-case keys
        from a previous JSON export are accepted too.

        Raises:
            TaskValidationError: If the id is missing or the title is blank,
                or a timestamp cannot be parsed.
        """
        task_id = data.get("id")
        if task_id is None:
            raise TaskValidationError("Task record has no id")
        try:
            task_id = int(task_id)
        except (TypeError, ValueError) as e:
            raise TaskValidationError(f"Task id must be an integer, got {task_id!r}") from e

        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise TaskValidationError(f"Task {task_id} has an empty title")

        def parse_datetime(*keys: str) -> Optional[datetime]:
            for key in keys:
                value = data.get(key)
                if value:
                    try:
                        return parse_iso_datetime(value)
                    except ValueError as e:
                        raise TaskValidationError(
                            f"Task {task_id} has an invalid {key}: {value!r}"
                        ) from e
            return None

        created_at = parse_datetime("created_at", "createdAt") or now_utc()

        return cls(
            id=task_id,
            title=title,
            content=data.get("content") or "",
            completed=bool(data.get("completed", False)),
            created_at=created_at,
            updated_at=parse_datetime("updated_at", "updatedAt") or created_at,
            due_date=parse_datetime("due_date", "dueDate"),
        )
