"""
Application wiring.

build_app() constructs every component for one base directory and returns
them in a single TaskBrainApp value. Nothing is cached at module level;
callers hold on to the app and pass it where it is needed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .adr_manager import ADRManager
from .archive_controller import ArchiveController, ArchiveResult
from .backlog_store import BacklogStore
from .communication_store import CommunicationStore
from .config import TaskBrainConfig, load_config
from .conflict_detector import ConflictDetector
from .context_store import ContextStore
from .handoff import HandoffGenerator
from .knowledge_extractor import KnowledgeExtractor
from .task_id import TaskIDGenerator
from .task_model import Priority, Task, TaskStatus, TaskType
from .task_store import TaskStore, WorktreeRemover
from .ticket_paths import TicketLayout
from .wiki import WikiWriter

logger = logging.getLogger("app")


class TaskManager:
    """The task lifecycle operations in one place: storage plus archiving."""

    def __init__(self, store: TaskStore, archiver: ArchiveController):
        self._store = store
        self._archiver = archiver

    def create_task(self, task_type: TaskType, title: str, **fields) -> Task:
        return self._store.create_task(task_type, title, **fields)

    def resume_task(self, task_id: str) -> Task:
        return self._store.resume_task(task_id)

    def archive_task(self, task_id: str, promote_decisions: bool = False,
                     update_wiki: bool = False) -> ArchiveResult:
        return self._archiver.archive_task(
            task_id, promote_decisions=promote_decisions, update_wiki=update_wiki
        )

    def unarchive_task(self, task_id: str) -> Task:
        return self._archiver.unarchive_task(task_id)

    def get_tasks_by_status(self, status: TaskStatus) -> List[Task]:
        return self._store.get_tasks_by_status(status)

    def get_all_tasks(self) -> List[Task]:
        return self._store.get_all_tasks()

    def get_task(self, task_id: str) -> Task:
        return self._store.get_task(task_id)

    def update_task_status(self, task_id: str, status: TaskStatus) -> Task:
        return self._store.update_task_status(task_id, status)

    def update_task_priority(self, task_id: str, priority: Priority) -> Task:
        return self._store.update_task_priority(task_id, priority)

    def reorder_priorities(self, task_ids: List[str]) -> List[Task]:
        return self._store.reorder_priorities(task_ids)


@dataclass
class TaskBrainApp:
    config: TaskBrainConfig
    layout: TicketLayout
    store: TaskStore
    communications: CommunicationStore
    adrs: ADRManager
    knowledge: KnowledgeExtractor
    conflicts: ConflictDetector
    archiver: ArchiveController
    tasks: TaskManager


def build_app(
    base_path: Optional[Path] = None,
    config: Optional[TaskBrainConfig] = None,
    worktree_remover: Optional[WorktreeRemover] = None,
) -> TaskBrainApp:
    """Wire every component for base_path (or config.base_path)."""
    if config is None:
        config = load_config(base_path)
    layout = TicketLayout(config.base_path)

    store = TaskStore(
        config=config,
        layout=layout,
        backlog=BacklogStore(layout.backlog_file),
        id_generator=TaskIDGenerator(
            layout.counter_file, config.task_id_prefix, config.task_id_pad_width
        ),
        worktree_remover=worktree_remover,
    )
    communications = CommunicationStore(layout)
    adrs = ADRManager(layout.decisions_dir)
    handoff = HandoffGenerator()
    knowledge = KnowledgeExtractor(
        documents=ContextStore(layout),
        communications=communications,
        tasks=store,
        adr_manager=adrs,
        wiki_writer=WikiWriter(layout.base_path, layout.wiki_dir),
        handoff_generator=handoff,
    )
    archiver = ArchiveController(layout, store, knowledge, handoff)

    logger.debug(f"Built app for {layout.base_path}")
    return TaskBrainApp(
        config=config,
        layout=layout,
        store=store,
        communications=communications,
        adrs=adrs,
        knowledge=knowledge,
        conflicts=ConflictDetector(layout, adrs),
        archiver=archiver,
        tasks=TaskManager(store, archiver),
    )
