"""
Knowledge Data Models

Decisions, extracted knowledge, handoff documents, ADRs and conflicts.

ExtractedKnowledge and Conflict are ephemeral: they are recomputed on demand
and never persisted themselves. HandoffDocument and ADRRecord describe
write-once records on disk.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List


class DecisionSource(str, Enum):
    """Where a decision was harvested from."""
    CONTEXT = "context"
    DESIGN = "design"
    COMMUNICATION = "communication"
    MANUAL = "manual"


class ADRStatus(str, Enum):
    PROPOSED = "Proposed"
    ACCEPTED = "Accepted"
    DEPRECATED = "Deprecated"
    SUPERSEDED = "Superseded"


class ConflictType(str, Enum):
    ADR_VIOLATION = "adr_violation"
    PREVIOUS_DECISION = "previous_decision"
    STAKEHOLDER_REQUIREMENT = "stakeholder_requirement"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Decision:
    """A technical decision; may be embedded in a handoff or promoted to an ADR."""
    title: str
    decision: str
    context: str = ""
    consequences: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    source: DecisionSource = DecisionSource.MANUAL

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        return data


@dataclass
class WikiUpdate:
    topic: str
    content: str
    task_id: str
    wiki_path: str = ""


@dataclass
class RunbookUpdate:
    section: str
    content: str
    task_id: str
    runbook_path: str = ""


@dataclass
class ExtractedKnowledge:
    task_id: str
    learnings: List[str] = field(default_factory=list)
    decisions: List[Decision] = field(default_factory=list)
    gotchas: List[str] = field(default_factory=list)
    wiki_updates: List[WikiUpdate] = field(default_factory=list)
    runbook_updates: List[RunbookUpdate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "learnings": list(self.learnings),
            "decisions": [d.to_dict() for d in self.decisions],
            "gotchas": list(self.gotchas),
            "wiki_updates": [asdict(w) for w in self.wiki_updates],
            "runbook_updates": [asdict(r) for r in self.runbook_updates],
        }


@dataclass(frozen=True)
class HandoffDocument:
    """
    Summary generated once per archive event.

    FROZEN: the rendered file is never re-rendered in place.
    """
    task_id: str
    summary: str
    completed_work: List[str]
    open_items: List[str]
    learnings: List[str]
    related_docs: List[str]
    generated_at: str
    decisions: List[Decision] = field(default_factory=list)
    gotchas: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "summary": self.summary,
            "completed_work": list(self.completed_work),
            "open_items": list(self.open_items),
            "learnings": list(self.learnings),
            "related_docs": list(self.related_docs),
            "generated_at": self.generated_at,
            "decisions": [d.to_dict() for d in self.decisions],
            "gotchas": list(self.gotchas),
        }


@dataclass(frozen=True)
class ADRRecord:
    """An architecture decision record as found in docs/decisions/."""
    adr_id: str
    number: int
    title: str
    status: str
    date: str
    source_task: str
    context: str
    decision: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Conflict:
    """Advisory result of a conflict query. Never blocking."""
    type: ConflictType
    source: str
    description: str
    recommendation: str
    severity: Severity
    matched_keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "source": self.source,
            "description": self.description,
            "recommendation": self.recommendation,
            "severity": self.severity.value,
            "matched_keywords": list(self.matched_keywords),
        }
