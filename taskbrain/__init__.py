"""
Task Brain

File-backed task lifecycle and knowledge capture for AI-assisted development.

- Task registry (backlog.yaml) with per-task tickets under tickets/<id>/
- Lifecycle: backlog -> in_progress <-> blocked/review -> done -> archived
- Archive moves a ticket to tickets/_archived/<id>/ after writing a handoff
- Knowledge extraction from notes, context, design and communications
- Sequentially numbered ADRs in docs/decisions/, wiki pages in docs/wiki/
- Advisory conflict checks against ADRs, earlier decisions and the wiki
"""

__version__ = "0.1.0"

from .app import TaskBrainApp, TaskManager, build_app
from .errors import (
    AlreadyArchivedError,
    InvalidTransitionError,
    NotArchivedError,
    StorageError,
    TaskBrainError,
    TaskNotFoundError,
    TaskParseError,
    ValidationError,
)
