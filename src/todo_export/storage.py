"""Task data source reading backend snapshots from JSON or YAML files."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .exceptions import StorageError, TaskValidationError
from .todo import Task


logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class TaskStore:
    """Read-only access to a file of task records.

    The file holds either a list of records or an object with a ``todos``
    or ``tasks`` list, which also covers a previous JSON export.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def load_records(self) -> List[Dict[str, Any]]:
        """Load raw records from the file.

        Raises:
            StorageError: If the file is missing, unreadable or malformed
        """
        if not self.path.exists():
            raise StorageError(f"Task file not found: {self.path}")

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        try:
            if self.path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(raw)
            else:
                data = json.loads(raw) if raw.strip() else []
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise StorageError(f"Failed to parse {self.path}: {e}") from e

        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("todos", data.get("tasks"))
        if not isinstance(data, list):
            raise StorageError(f"{self.path} does not contain a list of tasks")

        return data

    def load_tasks(self, user_id: Optional[str] = None) -> List[Task]:
        """Load tasks, newest first.

        Records owned by another user are dropped when ``user_id`` is given.
        Records that fail validation are skipped with a warning.
        """
        tasks = []
        for index, record in enumerate(self.load_records()):
            if not isinstance(record, dict):
                logger.warning("Skipping record %d in %s: not a mapping", index, self.path)
                continue
            if user_id is not None and record.get("user_id") not in (None, user_id):
                continue
            try:
                tasks.append(Task.from_dict(record))
            except TaskValidationError as e:
                logger.warning("Skipping record %d in %s: %s", index, self.path, e)

        tasks.sort(key=lambda t: t.created_at, reverse=True)
        logger.debug("Loaded %d tasks from %s", len(tasks), self.path)
        return tasks
