"""
HTTP API Router

FastAPI routes over one TaskBrainApp:
- Task creation, listing and lookup
- Status, priority and reorder updates
- Archive / unarchive
- Knowledge preview, communications and ADRs
- Conflict checks

Errors raised by the core are returned as their to_dict() payload with a
matching HTTP status code.
"""

import logging
import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from .app import TaskBrainApp
from .errors import TaskBrainError, TaskNotFoundError, ValidationError
from .knowledge_model import ADRStatus, Decision, DecisionSource
from .task_model import (
    BacklogFilter,
    Communication,
    CommunicationTag,
    Priority,
    TaskStatus,
    TaskType,
)

logger = logging.getLogger("api")

# Statuses that need force=true to be archived.
ACTIVE_STATUSES = (TaskStatus.IN_PROGRESS, TaskStatus.BLOCKED)

ERROR_STATUS_CODES = {
    "NOT_FOUND": 404,
    "ALREADY_ARCHIVED": 409,
    "NOT_ARCHIVED": 409,
    "VALIDATION_FAILED": 400,
    "INVALID_TRANSITION": 400,
}


def http_error(err: TaskBrainError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(err.code, 500)
    if status_code == 500:
        logger.error(f"Request failed: {err}")
    return HTTPException(status_code=status_code, detail=err.to_dict())


# -----------------------------------------------------------------------------
# Request Models
# -----------------------------------------------------------------------------
class CreateTaskRequest(BaseModel):
    type: TaskType
    title: str = Field(..., min_length=1)
    branch: str = ""
    repo: str = ""
    priority: Optional[Priority] = None
    owner: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    source: str = ""
    worktree: str = ""


class StatusUpdateRequest(BaseModel):
    status: TaskStatus


class PriorityUpdateRequest(BaseModel):
    priority: Priority


class ReorderRequest(BaseModel):
    task_ids: List[str] = Field(..., min_length=1)


class ArchiveRequest(BaseModel):
    promote_decisions: bool = False
    update_wiki: bool = False


class CommunicationRequest(BaseModel):
    date: datetime.date
    source: str
    contact: str = ""
    topic: str
    content: str
    tags: List[CommunicationTag] = Field(default_factory=list)


class ADRRequest(BaseModel):
    title: str = Field(..., min_length=1)
    decision: str = Field(..., min_length=1)
    context: str = ""
    consequences: List[str] = Field(default_factory=list)
    alternatives: List[str] = Field(default_factory=list)
    status: ADRStatus = ADRStatus.ACCEPTED


class ConflictCheckRequest(BaseModel):
    proposed_changes: str = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Router
# -----------------------------------------------------------------------------
def create_router(app: TaskBrainApp) -> APIRouter:
    router = APIRouter(tags=["Tasks"])

    @router.post("/tasks", status_code=201)
    async def create_task(request: CreateTaskRequest) -> Dict[str, Any]:
        try:
            task = app.tasks.create_task(
                request.type,
                request.title,
                branch=request.branch,
                repo=request.repo,
                priority=request.priority,
                owner=request.owner,
                tags=request.tags,
                source=request.source,
                worktree=request.worktree,
            )
        except TaskBrainError as e:
            raise http_error(e) from e
        return task.to_dict()

    @router.get("/tasks")
    async def list_tasks(
        status: List[TaskStatus] = Query(default=[]),
        priority: List[Priority] = Query(default=[]),
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        tag: List[str] = Query(default=[]),
    ) -> Dict[str, Any]:
        criteria = BacklogFilter(
            status=list(status), priority=list(priority), owner=owner, repo=repo, tags=list(tag)
        )
        try:
            tasks = app.store.filter_tasks(criteria)
        except TaskBrainError as e:
            raise http_error(e) from e
        return {"tasks": [t.to_dict() for t in tasks], "count": len(tasks)}

    @router.post("/tasks/reorder")
    async def reorder_priorities(request: ReorderRequest) -> Dict[str, Any]:
        try:
            tasks = app.tasks.reorder_priorities(request.task_ids)
        except TaskBrainError as e:
            raise http_error(e) from e
        return {"tasks": [t.to_dict() for t in tasks]}

    @router.get("/tasks/{task_id}")
    async def get_task(task_id: str) -> Dict[str, Any]:
        try:
            return app.tasks.get_task(task_id).to_dict()
        except TaskBrainError as e:
            raise http_error(e) from e

    @router.post("/tasks/{task_id}/resume")
    async def resume_task(task_id: str) -> Dict[str, Any]:
        try:
            return app.tasks.resume_task(task_id).to_dict()
        except TaskBrainError as e:
            raise http_error(e) from e

    @router.put("/tasks/{task_id}/status")
    async def update_status(task_id: str, request: StatusUpdateRequest) -> Dict[str, Any]:
        try:
            return app.tasks.update_task_status(task_id, request.status).to_dict()
        except TaskBrainError as e:
            raise http_error(e) from e

    @router.put("/tasks/{task_id}/priority")
    async def update_priority(task_id: str, request: PriorityUpdateRequest) -> Dict[str, Any]:
        try:
            return app.tasks.update_task_priority(task_id, request.priority).to_dict()
        except TaskBrainError as e:
            raise http_error(e) from e

    @router.post("/tasks/{task_id}/archive")
    async def archive_task(
        task_id: str,
        request: Optional[ArchiveRequest] = None,
        force: bool = Query(default=False),
    ) -> Dict[str, Any]:
        """Archive a task. In-progress and blocked tasks need force=true."""
        request = request or ArchiveRequest()
        try:
            task = app.tasks.get_task(task_id)
            if task.status in ACTIVE_STATUSES and not force:
                err = ValidationError(
                    [f"task is {task.status.value}; use force=true to archive an active task"],
                    task_id=task_id,
                    operation="archiving task",
                )
                raise HTTPException(status_code=409, detail=err.to_dict())
            result = app.tasks.archive_task(
                task_id,
                promote_decisions=request.promote_decisions,
                update_wiki=request.update_wiki,
            )
        except TaskBrainError as e:
            raise http_error(e) from e
        return result.to_dict()

    @router.post("/tasks/{task_id}/unarchive")
    async def unarchive_task(task_id: str) -> Dict[str, Any]:
        try:
            return app.tasks.unarchive_task(task_id).to_dict()
        except TaskBrainError as e:
            raise http_error(e) from e

    @router.delete("/tasks/{task_id}/worktree")
    async def cleanup_worktree(task_id: str) -> Dict[str, Any]:
        try:
            return app.store.cleanup_worktree(task_id).to_dict()
        except TaskBrainError as e:
            raise http_error(e) from e

    @router.get("/tasks/{task_id}/knowledge")
    async def preview_knowledge(task_id: str) -> Dict[str, Any]:
        """What archiving would harvest, without writing anything."""
        try:
            return app.knowledge.extract_from_task(task_id).to_dict()
        except TaskBrainError as e:
            raise http_error(e) from e

    @router.get("/tasks/{task_id}/communications")
    async def list_communications(task_id: str, q: Optional[str] = None) -> Dict[str, Any]:
        try:
            if not app.layout.exists(task_id):
                raise TaskNotFoundError(task_id, operation="listing communications")
            if q:
                comms = app.communications.search_communications(task_id, q)
            else:
                comms = app.communications.get_all_communications(task_id)
        except TaskBrainError as e:
            raise http_error(e) from e
        return {"communications": [c.to_dict() for c in comms], "count": len(comms)}

    @router.post("/tasks/{task_id}/communications", status_code=201)
    async def add_communication(task_id: str, request: CommunicationRequest) -> Dict[str, Any]:
        comm = Communication(
            date=request.date,
            source=request.source,
            contact=request.contact,
            topic=request.topic,
            content=request.content,
            tags=list(request.tags),
        )
        try:
            path = app.communications.add_communication(task_id, comm)
        except TaskBrainError as e:
            raise http_error(e) from e
        return {"task_id": task_id, "filename": path.name}

    @router.post("/tasks/{task_id}/adrs", status_code=201)
    async def create_adr(task_id: str, request: ADRRequest) -> Dict[str, Any]:
        decision = Decision(
            title=request.title,
            decision=request.decision,
            context=request.context,
            consequences=request.consequences,
            alternatives=request.alternatives,
            source=DecisionSource.MANUAL,
        )
        try:
            app.tasks.get_task(task_id)
            path = app.adrs.create_adr(decision, task_id, status=request.status)
        except TaskBrainError as e:
            raise http_error(e) from e
        return {"task_id": task_id, "path": str(path), "filename": path.name}

    @router.get("/adrs")
    async def list_adrs() -> Dict[str, Any]:
        adrs = app.adrs.list_adrs()
        return {"adrs": [a.to_dict() for a in adrs], "count": len(adrs)}

    @router.post("/tasks/{task_id}/conflicts")
    async def check_conflicts(task_id: str, request: ConflictCheckRequest) -> Dict[str, Any]:
        """Advisory only; a non-empty list does not block anything."""
        conflicts = app.conflicts.check_for_conflicts(task_id, request.proposed_changes)
        return {
            "task_id": task_id,
            "conflicts": [c.to_dict() for c in conflicts],
            "count": len(conflicts),
        }

    return router
