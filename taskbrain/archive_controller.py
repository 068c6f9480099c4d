"""
Archive Controller

Moves tickets between tickets/<id>/ and tickets/_archived/<id>/.

HARD CONSTRAINTS:
- Knowledge extraction and handoff rendering finish before anything on disk
  changes; a failure there leaves the task untouched
- handoff.md and the pre-archive status marker are staged inside the active
  dir so they move with it in a single directory rename
- status.yaml follows the rename and the registry is written last
- A failure after the rename moves the ticket back before the error is raised
- Staging never creates the active dir; an archive that loses a race to
  another archiver fails with AlreadyArchivedError and leaves the winner's
  layout untouched
- Unarchive restores exactly the status recorded in the marker
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .errors import (
    AlreadyArchivedError,
    NotArchivedError,
    StorageError,
    TaskBrainError,
    TaskNotFoundError,
)
from .fileio import atomic_write_text, read_text_if_exists
from .handoff import StagedHandoff
from .knowledge_model import (
    Decision,
    ExtractedKnowledge,
    HandoffDocument,
)
from .task_model import Task, TaskStatus, utc_now
from .ticket_paths import PRE_ARCHIVE_MARKER, TicketLayout

logger = logging.getLogger("archive_controller")


class TaskRecords(Protocol):
    def get_task(self, task_id: str, operation: str = ...) -> Task:
        ...

    def write_task(self, task: Task, ticket_dir: Optional[Path] = None) -> Path:
        ...

    def set_registry_status(self, task_id: str, status: TaskStatus, operation: str) -> None:
        ...


class KnowledgeSource(Protocol):
    def extract_with_handoff(self, task_id: str) -> Tuple[ExtractedKnowledge, HandoffDocument]:
        ...

    def update_wiki(self, knowledge: ExtractedKnowledge) -> List[Path]:
        ...

    def create_adr(self, decision: Decision, task_id: str) -> Path:
        ...


class HandoffWriter(Protocol):
    def render(self, handoff: HandoffDocument) -> str:
        ...

    def write(self, ticket_dir: Path, content: str, task_id: str) -> StagedHandoff:
        ...


@dataclass
class ArchiveResult:
    """Outcome of an archive, including any post-archive promotion failures."""
    task: Task
    handoff: HandoffDocument
    handoff_path: str
    adr_paths: List[str] = field(default_factory=list)
    wiki_paths: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "handoff": self.handoff.to_dict(),
            "handoff_path": self.handoff_path,
            "adr_paths": list(self.adr_paths),
            "wiki_paths": list(self.wiki_paths),
            "errors": list(self.errors),
        }


def read_pre_archive_status(marker: Path, task_id: str) -> TaskStatus:
    """Status recorded before archiving; backlog when the marker is missing or invalid."""
    raw = read_text_if_exists(marker, task_id=task_id).strip()
    if not raw:
        logger.warning(f"No pre-archive status for {task_id}; restoring to backlog")
        return TaskStatus.BACKLOG
    try:
        status = TaskStatus(raw)
    except ValueError:
        logger.warning(f"Invalid pre-archive status '{raw}' for {task_id}; restoring to backlog")
        return TaskStatus.BACKLOG
    if status == TaskStatus.ARCHIVED:
        logger.warning(f"Pre-archive status for {task_id} is 'archived'; restoring to backlog")
        return TaskStatus.BACKLOG
    return status


class ArchiveController:
    """
    Archive and unarchive tasks.

    Any non-archived status can be archived. Refusing to archive work that is
    still in progress is left to the caller.
    """

    def __init__(
        self,
        layout: TicketLayout,
        tasks: TaskRecords,
        knowledge: KnowledgeSource,
        handoff_writer: HandoffWriter,
    ):
        self._layout = layout
        self._tasks = tasks
        self._knowledge = knowledge
        self._handoff_writer = handoff_writer

    # -------------------------------------------------------------------------
    # Archive
    # -------------------------------------------------------------------------

    def archive_task(
        self,
        task_id: str,
        promote_decisions: bool = False,
        update_wiki: bool = False,
    ) -> ArchiveResult:
        operation = "archiving task"
        task = self._tasks.get_task(task_id, operation=operation)
        active = self._layout.active_dir(task_id)
        archived = self._layout.archived_dir(task_id)

        if task.status == TaskStatus.ARCHIVED:
            raise AlreadyArchivedError(task_id, operation=operation)
        if not active.is_dir():
            if archived.is_dir():
                raise AlreadyArchivedError(task_id, operation=operation)
            raise TaskNotFoundError(task_id, operation=operation)

        original = replace(task)

        # Nothing below touches the disk until the handoff is fully rendered.
        knowledge, handoff = self._knowledge.extract_with_handoff(task_id)
        content = self._handoff_writer.render(handoff)

        # Another archiver may have moved the ticket while we were extracting.
        if not active.is_dir() or archived.exists():
            logger.warning(f"{task_id} was archived concurrently; giving up")
            raise AlreadyArchivedError(task_id, operation=operation)

        staged: Optional[StagedHandoff] = None
        marker = active / PRE_ARCHIVE_MARKER
        try:
            staged = self._handoff_writer.write(active, content, task_id)
            atomic_write_text(marker, original.status.value, task_id=task_id, create_parents=False)
            if archived.exists():
                raise FileExistsError(f"{archived} already exists")
            self._layout.archived_root.mkdir(parents=True, exist_ok=True)
            active.rename(archived)
        except (OSError, StorageError) as e:
            logger.error(f"Archiving {task_id} failed before migration, rolling back: {e}")
            if active.is_dir():
                marker.unlink(missing_ok=True)
            if staged is not None:
                staged.rollback()
            if isinstance(e, FileExistsError) or (archived.is_dir() and not active.is_dir()):
                raise AlreadyArchivedError(task_id, operation=operation) from e
            if isinstance(e, StorageError):
                raise
            raise StorageError(str(active), str(e), task_id=task_id, operation=operation) from e

        task.status = TaskStatus.ARCHIVED
        task.ticket_path = str(archived)
        task.updated = utc_now()
        try:
            self._tasks.write_task(task, archived)
            self._tasks.set_registry_status(task_id, TaskStatus.ARCHIVED, operation=operation)
        except TaskBrainError:
            self._undo_archive(original, active, archived, staged)
            raise

        logger.info(f"Archived {task_id} (was {original.status.value})")
        result = ArchiveResult(
            task=task,
            handoff=handoff,
            handoff_path=str(archived / staged.path.name),
        )
        if promote_decisions:
            self._promote_decisions(task_id, knowledge, result)
        if update_wiki:
            self._apply_wiki_updates(task_id, knowledge, result)
        return result

    def _undo_archive(
        self, original: Task, active: Path, archived: Path, staged: StagedHandoff
    ) -> None:
        task_id = original.id
        logger.error(f"Archiving {task_id} failed after migration, moving ticket back")
        try:
            archived.rename(active)
            self._tasks.write_task(original, active)
            (active / PRE_ARCHIVE_MARKER).unlink(missing_ok=True)
            staged.rollback()
        except (OSError, TaskBrainError) as e:
            logger.error(f"Could not restore {task_id} to {active}: {e}")

    def _promote_decisions(
        self, task_id: str, knowledge: ExtractedKnowledge, result: ArchiveResult
    ) -> None:
        for decision in knowledge.decisions:
            try:
                result.adr_paths.append(str(self._knowledge.create_adr(decision, task_id)))
            except TaskBrainError as e:
                logger.warning(f"ADR promotion failed for {task_id}: {e}")
                result.errors.append(e.message)

    def _apply_wiki_updates(
        self, task_id: str, knowledge: ExtractedKnowledge, result: ArchiveResult
    ) -> None:
        try:
            result.wiki_paths.extend(str(p) for p in self._knowledge.update_wiki(knowledge))
        except TaskBrainError as e:
            logger.warning(f"Wiki update failed for {task_id}: {e}")
            result.errors.append(e.message)

    # -------------------------------------------------------------------------
    # Unarchive
    # -------------------------------------------------------------------------

    def unarchive_task(self, task_id: str) -> Task:
        operation = "unarchiving task"
        task = self._tasks.get_task(task_id, operation=operation)
        if task.status != TaskStatus.ARCHIVED:
            raise NotArchivedError(task_id, task.status.value, operation=operation)

        active = self._layout.active_dir(task_id)
        archived = self._layout.archived_dir(task_id)
        if not archived.is_dir():
            raise StorageError(
                str(archived), "archived ticket directory is missing",
                task_id=task_id, operation=operation,
            )
        if active.exists():
            raise StorageError(
                str(active), "active ticket directory already exists",
                task_id=task_id, operation=operation,
            )

        original = replace(task)
        restored = read_pre_archive_status(archived / PRE_ARCHIVE_MARKER, task_id)

        try:
            archived.rename(active)
        except OSError as e:
            raise StorageError(str(archived), str(e), task_id=task_id, operation=operation) from e

        task.status = restored
        task.ticket_path = str(active)
        task.updated = utc_now()
        try:
            self._tasks.write_task(task, active)
            self._tasks.set_registry_status(task_id, restored, operation=operation)
        except TaskBrainError:
            logger.error(f"Unarchiving {task_id} failed after migration, moving ticket back")
            try:
                self._tasks.write_task(original, active)
                active.rename(archived)
            except (OSError, TaskBrainError) as e:
                logger.error(f"Could not restore {task_id} to {archived}: {e}")
            raise

        (active / PRE_ARCHIVE_MARKER).unlink(missing_ok=True)
        logger.info(f"Unarchived {task_id} to {restored.value}")
        return task
