"""
Backlog Store

The task registry: backlog.yaml in the base directory, one entry per task.

HARD CONSTRAINTS:
- Every mutation reloads the file, applies the change in memory and writes
  the whole file back through a temp file + rename
- A malformed entry is skipped with a warning; the rest of the registry loads
- Malformed entries are written back unchanged by every save; only a manual
  edit repairs or removes them
- Entries come back ordered by task ID, numerically on the trailing counter
"""

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import TaskBrainError, TaskNotFoundError, TaskParseError, ValidationError
from .fileio import read_yaml_file, write_yaml_file
from .task_model import BacklogEntry, BacklogFilter

logger = logging.getLogger("backlog_store")

REGISTRY_VERSION = "1.0"

TASK_ID_RE = re.compile(r"^(.*?)(\d+)$")


def task_id_sort_key(task_id: str) -> Tuple[str, int, str]:
    """Order IDs by prefix, then by counter value, so TASK-9 precedes TASK-10."""
    match = TASK_ID_RE.match(task_id)
    if not match:
        return task_id, -1, task_id
    return match.group(1), int(match.group(2)), task_id


class BacklogStore:
    """Registry of task entries persisted as backlog.yaml."""

    def __init__(self, registry_file: Path):
        self._registry_file = Path(registry_file)
        self._entries: Dict[str, BacklogEntry] = {}
        self._invalid: Dict[str, Any] = {}
        self._version = REGISTRY_VERSION

    @property
    def registry_file(self) -> Path:
        return self._registry_file

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """Replace in-memory state with the file content."""
        self._entries = {}
        self._invalid = {}
        if not self._registry_file.exists():
            return

        data = read_yaml_file(self._registry_file)
        self._version = str(data.get("version") or REGISTRY_VERSION)
        tasks = data.get("tasks") or {}
        if not isinstance(tasks, dict):
            raise TaskParseError(str(self._registry_file), "'tasks' must be a mapping")

        for task_id, raw in tasks.items():
            task_id = str(task_id)
            try:
                if not isinstance(raw, dict):
                    raise ValidationError([f"entry is {type(raw).__name__}, not a mapping"])
                entry = BacklogEntry.from_dict({"id": task_id, **raw})
            except TaskBrainError as e:
                logger.warning(f"Skipping registry entry {task_id}: {e}")
                self._invalid[task_id] = raw
                continue
            self._entries[entry.id] = entry

    def save(self) -> None:
        tasks: Dict[str, Any] = {task_id: raw for task_id, raw in self._invalid.items()}
        tasks.update((task_id, entry.to_dict()) for task_id, entry in self._entries.items())
        data = {
            "version": self._version,
            "tasks": {
                task_id: tasks[task_id]
                for task_id in sorted(tasks, key=task_id_sort_key)
            },
        }
        write_yaml_file(self._registry_file, data)
        logger.debug(
            f"Saved {len(self._entries)} registry entries ({len(self._invalid)} malformed kept)"
        )

    def mutate(self, change: Callable[["BacklogStore"], None]) -> None:
        """Load, apply change, save. The unit of every registry write."""
        self.load()
        change(self)
        self.save()

    # -------------------------------------------------------------------------
    # In-memory operations
    # -------------------------------------------------------------------------

    def add(self, entry: BacklogEntry) -> None:
        if not entry.id:
            raise ValidationError(["task ID must not be empty"], operation="adding task")
        if entry.id in self._entries or entry.id in self._invalid:
            raise ValidationError(
                [f"task {entry.id} already exists"], task_id=entry.id, operation="adding task"
            )
        self._entries[entry.id] = entry

    def put(self, entry: BacklogEntry) -> None:
        """Insert or replace. Replacing a malformed entry repairs it."""
        self._invalid.pop(entry.id, None)
        self._entries[entry.id] = entry

    def remove(self, task_id: str) -> None:
        if task_id in self._invalid:
            del self._invalid[task_id]
            return
        if task_id not in self._entries:
            raise TaskNotFoundError(task_id, operation="removing task")
        del self._entries[task_id]

    def get(self, task_id: str) -> Optional[BacklogEntry]:
        return self._entries.get(task_id)

    def require(self, task_id: str, operation: Optional[str] = None) -> BacklogEntry:
        entry = self._entries.get(task_id)
        if entry is not None:
            return entry
        if task_id in self._invalid:
            raise TaskParseError(
                str(self._registry_file),
                "registry entry is malformed",
                task_id=task_id,
                operation=operation,
            )
        raise TaskNotFoundError(task_id, operation=operation)

    def invalid_ids(self) -> List[str]:
        return sorted(self._invalid, key=task_id_sort_key)

    def all(self) -> List[BacklogEntry]:
        return [self._entries[task_id] for task_id in self.ids()]

    def filter(self, criteria: BacklogFilter) -> List[BacklogEntry]:
        return [entry for entry in self.all() if criteria.matches(entry)]

    def ids(self) -> List[str]:
        return sorted(self._entries, key=task_id_sort_key)
