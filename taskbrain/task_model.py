"""
Task Data Models

Enums and dataclasses for tasks, registry entries and communications.

Field names of the persisted records are part of the on-disk format and must
not change: id, title, type, status, priority, owner, repo, branch, worktree,
ticket_path, created, updated, tags, blocked_by, related, source.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from .errors import ValidationError

E = TypeVar("E", bound=Enum)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> str:
    """Current UTC time as an RFC 3339 string with second precision."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _timestamp(value: Any) -> str:
    # Hand-edited YAML may carry unquoted timestamps that load as datetime.
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    return "" if value is None else str(value)


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def parse_enum(enum_cls: Type[E], value: Any, label: str) -> E:
    """Convert a raw string to an enum member, raising ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError([f"unrecognized {label} '{value}' (allowed: {allowed})"])


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------
class TaskType(str, Enum):
    """Kind of work a task involves."""
    FEAT = "feat"
    BUG = "bug"
    SPIKE = "spike"
    REFACTOR = "refactor"


class TaskStatus(str, Enum):
    """Task lifecycle states."""
    BACKLOG = "backlog"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    REVIEW = "review"
    DONE = "done"
    ARCHIVED = "archived"


class Priority(str, Enum):
    """Urgency, P0 highest."""
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class CommunicationTag(str, Enum):
    REQUIREMENT = "requirement"
    DECISION = "decision"
    BLOCKER = "blocker"
    QUESTION = "question"
    ACTION_ITEM = "action_item"


# -----------------------------------------------------------------------------
# Task Model
# -----------------------------------------------------------------------------
@dataclass
class Task:
    """
    A unit of work, mirrored in tickets/<id>/status.yaml.

    The registry holds a subset of these fields; status.yaml holds all of them.
    """
    id: str
    title: str
    type: TaskType
    status: TaskStatus = TaskStatus.BACKLOG
    priority: Priority = Priority.P2
    owner: str = ""
    repo: str = ""
    branch: str = ""
    worktree: str = ""
    ticket_path: str = ""
    created: str = ""
    updated: str = ""
    tags: List[str] = field(default_factory=list)
    blocked_by: List[str] = field(default_factory=list)
    related: List[str] = field(default_factory=list)
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "status": self.status.value,
            "priority": self.priority.value,
            "owner": self.owner,
            "repo": self.repo,
            "branch": self.branch,
            "worktree": self.worktree,
            "ticket_path": self.ticket_path,
            "created": self.created,
            "updated": self.updated,
            "tags": list(self.tags),
            "blocked_by": list(self.blocked_by),
            "related": list(self.related),
        }
        if self.source:
            data["source"] = self.source
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from a status.yaml mapping. Raises ValidationError on bad enums."""
        task_id = str(data.get("id") or "").strip()
        if not task_id:
            raise ValidationError(["status record has no 'id'"])
        return cls(
            id=task_id,
            title=str(data.get("title") or ""),
            type=parse_enum(TaskType, data.get("type", TaskType.FEAT.value), "task type"),
            status=parse_enum(TaskStatus, data.get("status", TaskStatus.BACKLOG.value), "status"),
            priority=parse_enum(Priority, data.get("priority") or Priority.P2.value, "priority"),
            owner=str(data.get("owner") or ""),
            repo=str(data.get("repo") or ""),
            branch=str(data.get("branch") or ""),
            worktree=str(data.get("worktree") or ""),
            ticket_path=str(data.get("ticket_path") or ""),
            created=_timestamp(data.get("created")),
            updated=_timestamp(data.get("updated")),
            tags=_str_list(data.get("tags")),
            blocked_by=_str_list(data.get("blocked_by")),
            related=_str_list(data.get("related")),
            source=str(data.get("source") or ""),
        )

    def to_entry(self) -> "BacklogEntry":
        return BacklogEntry(
            id=self.id,
            title=self.title,
            source=self.source,
            status=self.status,
            priority=self.priority,
            owner=self.owner,
            repo=self.repo,
            branch=self.branch,
            created=self.created,
            tags=list(self.tags),
            blocked_by=list(self.blocked_by),
            related=list(self.related),
        )


@dataclass
class BacklogEntry:
    """One task row in backlog.yaml."""
    id: str
    title: str
    status: TaskStatus
    priority: Priority
    source: str = ""
    owner: str = ""
    repo: str = ""
    branch: str = ""
    created: str = ""
    tags: List[str] = field(default_factory=list)
    blocked_by: List[str] = field(default_factory=list)
    related: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "title": self.title}
        if self.source:
            data["source"] = self.source
        data.update({
            "status": self.status.value,
            "priority": self.priority.value,
            "owner": self.owner,
            "repo": self.repo,
            "branch": self.branch,
            "created": self.created,
            "tags": list(self.tags),
            "blocked_by": list(self.blocked_by),
            "related": list(self.related),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BacklogEntry":
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            source=str(data.get("source") or ""),
            status=parse_enum(TaskStatus, data.get("status", TaskStatus.BACKLOG.value), "status"),
            priority=parse_enum(Priority, data.get("priority") or Priority.P2.value, "priority"),
            owner=str(data.get("owner") or ""),
            repo=str(data.get("repo") or ""),
            branch=str(data.get("branch") or ""),
            created=_timestamp(data.get("created")),
            tags=_str_list(data.get("tags")),
            blocked_by=_str_list(data.get("blocked_by")),
            related=_str_list(data.get("related")),
        )


@dataclass
class BacklogFilter:
    """All given criteria must match (AND). Empty criteria match everything."""
    status: List[TaskStatus] = field(default_factory=list)
    priority: List[Priority] = field(default_factory=list)
    owner: Optional[str] = None
    repo: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def matches(self, entry: BacklogEntry) -> bool:
        if self.status and entry.status not in self.status:
            return False
        if self.priority and entry.priority not in self.priority:
            return False
        if self.owner and entry.owner != self.owner:
            return False
        if self.repo and entry.repo != self.repo:
            return False
        if self.tags and not set(self.tags).issubset(entry.tags):
            return False
        return True


# -----------------------------------------------------------------------------
# Communications
# -----------------------------------------------------------------------------
@dataclass
class Communication:
    """A stakeholder exchange stored under tickets/<id>/communications/."""
    date: date
    source: str
    contact: str
    topic: str
    content: str
    tags: List[CommunicationTag] = field(default_factory=list)
    filename: str = ""

    def has_tag(self, tag: CommunicationTag) -> bool:
        return tag in self.tags

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "source": self.source,
            "contact": self.contact,
            "topic": self.topic,
            "content": self.content,
            "tags": [t.value for t in self.tags],
            "filename": self.filename,
        }
