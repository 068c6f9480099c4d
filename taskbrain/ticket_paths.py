"""
Ticket directory layout.

Active tickets live in <base>/tickets/<id>/, archived ones in
<base>/tickets/_archived/<id>/. Exactly one of the two exists per task.
"""

from pathlib import Path
from typing import Iterator

ARCHIVED_DIR = "_archived"

STATUS_FILE = "status.yaml"
NOTES_FILE = "notes.md"
CONTEXT_FILE = "context.md"
DESIGN_FILE = "design.md"
HANDOFF_FILE = "handoff.md"
COMMUNICATIONS_DIR = "communications"
PRE_ARCHIVE_MARKER = ".pre_archive_status"

BACKLOG_FILE = "backlog.yaml"
COUNTER_FILE = ".task_counter"
CONFIG_FILE = ".taskconfig"


class TicketLayout:
    """Resolves every on-disk location under one base path."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)

    @property
    def tickets_dir(self) -> Path:
        return self.base_path / "tickets"

    @property
    def archived_root(self) -> Path:
        return self.tickets_dir / ARCHIVED_DIR

    @property
    def backlog_file(self) -> Path:
        return self.base_path / BACKLOG_FILE

    @property
    def counter_file(self) -> Path:
        return self.base_path / COUNTER_FILE

    @property
    def decisions_dir(self) -> Path:
        return self.base_path / "docs" / "decisions"

    @property
    def wiki_dir(self) -> Path:
        return self.base_path / "docs" / "wiki"

    def active_dir(self, task_id: str) -> Path:
        return self.tickets_dir / task_id

    def archived_dir(self, task_id: str) -> Path:
        return self.archived_root / task_id

    def resolve_dir(self, task_id: str) -> Path:
        """Active dir if present, else archived dir if present, else active."""
        active = self.active_dir(task_id)
        if active.is_dir():
            return active
        archived = self.archived_dir(task_id)
        if archived.is_dir():
            return archived
        return active

    def exists(self, task_id: str) -> bool:
        return self.active_dir(task_id).is_dir() or self.archived_dir(task_id).is_dir()

    def status_file(self, task_id: str) -> Path:
        return self.resolve_dir(task_id) / STATUS_FILE

    def iter_ticket_dirs(self, include_archived: bool = True) -> Iterator[Path]:
        """Yield ticket directories in name order, active first."""
        roots = [self.tickets_dir]
        if include_archived:
            roots.append(self.archived_root)
        for root in roots:
            if not root.is_dir():
                continue
            for entry in sorted(root.iterdir()):
                if entry.is_dir() and entry.name != ARCHIVED_DIR:
                    yield entry
