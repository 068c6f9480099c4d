"""
Task Store

CRUD and status transitions over the task registry (backlog.yaml) and the
per-task mirror (tickets/<id>/status.yaml).

HARD CONSTRAINTS:
- status.yaml is written first, the registry last; the registry write is the
  serializing step every reader trusts
- Every write goes through a temp file + rename
- A corrupt status.yaml only affects its own task; listings skip it
- Archive and unarchive are not reachable through update_task_status; they
  belong to the ArchiveController
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Set

from .backlog_store import BacklogStore
from .config import TaskBrainConfig
from .errors import (
    InvalidTransitionError,
    StorageError,
    TaskBrainError,
    TaskNotFoundError,
    TaskParseError,
    ValidationError,
)
from .fileio import atomic_write_text, dump_yaml, read_yaml_file
from .task_id import TaskIDGenerator
from .task_model import (
    BacklogFilter,
    Priority,
    Task,
    TaskStatus,
    TaskType,
    parse_enum,
    utc_now,
)
from .ticket_paths import (
    COMMUNICATIONS_DIR,
    CONTEXT_FILE,
    DESIGN_FILE,
    NOTES_FILE,
    STATUS_FILE,
    TicketLayout,
)
from .ticket_templates import render_context, render_design, render_notes

logger = logging.getLogger("task_store")

# -----------------------------------------------------------------------------
# Status Transition Rules
# -----------------------------------------------------------------------------

# Transitions reachable through update_task_status. ARCHIVED is entered and
# left only through the ArchiveController.
VALID_TRANSITIONS: Dict[TaskStatus, List[TaskStatus]] = {
    TaskStatus.BACKLOG: [TaskStatus.IN_PROGRESS],
    TaskStatus.IN_PROGRESS: [TaskStatus.BLOCKED, TaskStatus.REVIEW, TaskStatus.DONE],
    TaskStatus.BLOCKED: [TaskStatus.IN_PROGRESS],
    TaskStatus.REVIEW: [TaskStatus.IN_PROGRESS, TaskStatus.DONE],
    TaskStatus.DONE: [],
    TaskStatus.ARCHIVED: [],
}

# Priorities handed out by reorder_priorities, in order. Every ID past the
# end of this list gets the last value.
REORDER_PRIORITIES: List[Priority] = [Priority.P0, Priority.P1, Priority.P2, Priority.P3]

MAX_ID_ATTEMPTS = 100


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, [])


class WorktreeRemover(Protocol):
    """The part of the worktree service needed to clean up after a task."""

    def remove_worktree(self, worktree_path: str) -> None:
        ...


class TaskStore:
    """
    Task lifecycle storage.

    Provides:
    - Task creation with collision-free sequential IDs
    - Lookup, listing and filtering
    - Validated status and priority updates
    - Low-level writes used by the ArchiveController
    """

    def __init__(
        self,
        config: TaskBrainConfig,
        layout: TicketLayout,
        backlog: BacklogStore,
        id_generator: TaskIDGenerator,
        worktree_remover: Optional[WorktreeRemover] = None,
    ):
        self._config = config
        self._layout = layout
        self._backlog = backlog
        self._id_generator = id_generator
        self._worktree_remover = worktree_remover

    @property
    def layout(self) -> TicketLayout:
        return self._layout

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_task(
        self,
        task_type: TaskType,
        title: str,
        branch: str = "",
        repo: str = "",
        priority: Optional[Priority] = None,
        owner: Optional[str] = None,
        tags: Optional[List[str]] = None,
        source: str = "",
        worktree: str = "",
    ) -> Task:
        """
        Create a task in backlog status with its full ticket scaffold.

        The worktree path is supplied by the caller; this store never creates
        worktrees.
        """
        operation = "creating task"
        task_type = parse_enum(TaskType, task_type, "task type")
        if priority is not None:
            priority = parse_enum(Priority, priority, "priority")
        if not title.strip():
            raise ValidationError(["title must not be empty"], operation=operation)

        self._backlog.load()
        ticket_dir = self._claim_ticket_dir()
        task_id = ticket_dir.name

        now = utc_now()
        task = Task(
            id=task_id,
            title=title.strip(),
            type=task_type,
            status=TaskStatus.BACKLOG,
            priority=priority or self._config.default_priority,
            owner=self._config.default_owner if owner is None else owner,
            repo=repo,
            branch=branch,
            worktree=worktree,
            ticket_path=str(ticket_dir),
            created=now,
            updated=now,
            tags=list(tags or []),
            source=source,
        )

        try:
            (ticket_dir / COMMUNICATIONS_DIR).mkdir(exist_ok=True)
            atomic_write_text(ticket_dir / NOTES_FILE, render_notes(task_type, task_id), task_id)
            atomic_write_text(ticket_dir / DESIGN_FILE, render_design(task_id, task.title), task_id)
            atomic_write_text(ticket_dir / CONTEXT_FILE, render_context(task_id), task_id)
            self.write_task(task, ticket_dir)
            self._backlog.mutate(lambda b: b.add(task.to_entry()))
        except (OSError, TaskBrainError) as e:
            logger.error(f"Creating {task_id} failed, removing partial ticket: {e}")
            shutil.rmtree(ticket_dir, ignore_errors=True)
            if isinstance(e, TaskBrainError):
                raise
            raise StorageError(str(ticket_dir), str(e), task_id=task_id, operation=operation) from e

        logger.info(f"Created task {task_id} ({task_type.value}): {task.title}")
        return task

    def _claim_ticket_dir(self) -> Path:
        """Reserve the next free ID by creating its ticket dir exclusively."""
        known: Set[str] = set(self._backlog.ids())
        known.update(p.name for p in self._layout.iter_ticket_dirs())
        try:
            self._layout.tickets_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(str(self._layout.tickets_dir), str(e), operation="creating task") from e

        for _ in range(MAX_ID_ATTEMPTS):
            task_id = self._id_generator.next_id(known)
            ticket_dir = self._layout.active_dir(task_id)
            if self._layout.archived_dir(task_id).exists():
                known.add(task_id)
                continue
            try:
                ticket_dir.mkdir()
            except FileExistsError:
                logger.warning(f"Ticket directory for {task_id} already exists; skipping ID")
                known.add(task_id)
                continue
            except OSError as e:
                raise StorageError(str(ticket_dir), str(e), task_id=task_id, operation="creating task") from e
            return ticket_dir

        raise StorageError(
            str(self._layout.tickets_dir),
            f"no free task ID after {MAX_ID_ATTEMPTS} attempts",
            operation="creating task",
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_task(self, task_id: str, operation: str = "getting task") -> Task:
        """Load a task from its status.yaml, active or archived."""
        if not self._layout.exists(task_id):
            raise TaskNotFoundError(task_id, operation=operation)
        status_path = self._layout.status_file(task_id)
        if not status_path.exists():
            raise TaskNotFoundError(task_id, operation=operation)

        try:
            data = read_yaml_file(status_path, task_id=task_id)
            return Task.from_dict(data)
        except TaskParseError as e:
            e.details.setdefault("operation", operation)
            raise
        except ValidationError as e:
            raise TaskParseError(str(status_path), e.message, task_id=task_id, operation=operation) from e

    def _load_many(self, task_ids: Iterable[str]) -> List[Task]:
        tasks = []
        for task_id in task_ids:
            try:
                tasks.append(self.get_task(task_id, operation="listing tasks"))
            except TaskBrainError as e:
                logger.warning(f"Skipping {task_id}: {e}")
        return tasks

    def get_all_tasks(self) -> List[Task]:
        self._backlog.load()
        return self._load_many(self._backlog.ids())

    def get_tasks_by_status(self, status: TaskStatus) -> List[Task]:
        status = parse_enum(TaskStatus, status, "status")
        return self.filter_tasks(BacklogFilter(status=[status]))

    def filter_tasks(self, criteria: BacklogFilter) -> List[Task]:
        """Tasks whose registry entries match every given criterion."""
        self._backlog.load()
        return self._load_many(entry.id for entry in self._backlog.filter(criteria))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def resume_task(self, task_id: str) -> Task:
        """Promote a backlog task to in_progress; any other status is returned unchanged."""
        task = self.get_task(task_id, operation="resuming task")
        if task.status != TaskStatus.BACKLOG:
            return task
        return self._apply_status(task, TaskStatus.IN_PROGRESS, "resuming task")

    def update_task_status(self, task_id: str, status: TaskStatus) -> Task:
        status = parse_enum(TaskStatus, status, "status")
        task = self.get_task(task_id, operation="updating task status")
        if task.status == status:
            return task
        if not can_transition(task.status, status):
            raise InvalidTransitionError(
                task_id,
                task.status.value,
                status.value,
                [s.value for s in VALID_TRANSITIONS.get(task.status, [])],
            )
        return self._apply_status(task, status, "updating task status")

    def _require_registered(self, task_id: str, operation: str) -> None:
        """Fail before any write when the registry cannot take the change."""
        self._backlog.load()
        self._backlog.require(task_id, operation=operation)

    def _apply_status(self, task: Task, status: TaskStatus, operation: str) -> Task:
        previous = task.status
        self._require_registered(task.id, operation)
        task.status = status
        task.updated = utc_now()
        self.write_task(task)
        self.set_registry_status(task.id, status, operation=operation)
        logger.info(f"Task {task.id}: {previous.value} -> {status.value}")
        return task

    def update_task_priority(self, task_id: str, priority: Priority) -> Task:
        priority = parse_enum(Priority, priority, "priority")
        operation = "updating task priority"
        task = self.get_task(task_id, operation=operation)
        self._require_registered(task_id, operation)
        task.priority = priority
        task.updated = utc_now()
        self.write_task(task)

        def change(backlog: BacklogStore) -> None:
            backlog.require(task_id, operation=operation).priority = priority

        self._backlog.mutate(change)
        return task

    def reorder_priorities(self, task_ids: List[str]) -> List[Task]:
        """
        Assign P0, P1, P2 to the first three IDs and P3 to all the rest.

        Every ID is validated before anything is written.
        """
        operation = "reordering priorities"
        duplicates = sorted({i for i in task_ids if task_ids.count(i) > 1})
        if duplicates:
            raise ValidationError([f"duplicate task IDs: {duplicates}"], operation=operation)

        self._backlog.load()
        for task_id in task_ids:
            self._backlog.require(task_id, operation=operation)
        tasks = [self.get_task(task_id, operation=operation) for task_id in task_ids]

        now = utc_now()
        for index, task in enumerate(tasks):
            task.priority = REORDER_PRIORITIES[min(index, len(REORDER_PRIORITIES) - 1)]
            task.updated = now
            self.write_task(task)

        def change(backlog: BacklogStore) -> None:
            for task in tasks:
                backlog.require(task.id, operation=operation).priority = task.priority

        self._backlog.mutate(change)
        logger.info(f"Reordered priorities for {len(tasks)} tasks")
        return tasks

    def cleanup_worktree(self, task_id: str) -> Task:
        """Remove the task's worktree through the injected remover and clear the path."""
        operation = "cleaning up worktree"
        task = self.get_task(task_id, operation=operation)
        if not task.worktree:
            raise ValidationError(["task has no worktree"], task_id=task_id, operation=operation)
        if self._worktree_remover is None:
            raise ValidationError(["worktree remover not available"], task_id=task_id, operation=operation)

        self._worktree_remover.remove_worktree(task.worktree)
        task.worktree = ""
        task.updated = utc_now()
        self.write_task(task)
        logger.info(f"Removed worktree for {task_id}")
        return task

    # -------------------------------------------------------------------------
    # Low-level writes
    # -------------------------------------------------------------------------

    def write_task(self, task: Task, ticket_dir: Optional[Path] = None) -> Path:
        """Persist status.yaml in ticket_dir, or wherever the ticket currently lives."""
        target = (ticket_dir or self._layout.resolve_dir(task.id)) / STATUS_FILE
        atomic_write_text(target, dump_yaml(task.to_dict()), task_id=task.id)
        return target

    def set_registry_status(self, task_id: str, status: TaskStatus, operation: str) -> None:
        def change(backlog: BacklogStore) -> None:
            backlog.require(task_id, operation=operation).status = status

        self._backlog.mutate(change)
