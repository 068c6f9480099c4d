"""
Knowledge Extractor

Harvests learnings, decisions, gotchas, wiki updates and runbook updates
from a ticket's notes.md, context.md, design.md and its communications.

Extraction is best-effort: a missing file or section contributes nothing and
never raises. Only an unknown task ID is an error.
"""

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from .adr_manager import ADRManager
from .context_store import TicketDocuments
from .handoff import HandoffGenerator
from .knowledge_model import (
    Decision,
    DecisionSource,
    ExtractedKnowledge,
    HandoffDocument,
    RunbookUpdate,
    WikiUpdate,
)
from .markdown_sections import (
    extract_list_items,
    extract_section,
    extract_table_rows,
    is_placeholder,
    parse_heading,
    section_lines,
)
from .task_model import Communication, CommunicationTag, Task
from .wiki import WikiWriter

logger = logging.getLogger("knowledge_extractor")

PURPOSE_PREFIX = "- **Purpose:**"


class DocumentReader(Protocol):
    def read_documents(self, task_id: str) -> TicketDocuments:
        ...


class CommunicationReader(Protocol):
    def get_all_communications(self, task_id: str) -> List[Communication]:
        ...


class TaskReader(Protocol):
    def get_task(self, task_id: str, operation: str = ...) -> Task:
        ...


# -----------------------------------------------------------------------------
# Section parsers
# -----------------------------------------------------------------------------

def split_topic(item: str) -> Tuple[str, str]:
    """'Topic: content' -> (topic, content); without a colon both are the item."""
    topic, sep, content = item.partition(":")
    if not sep or not topic.strip() or not content.strip():
        return item, item
    return topic.strip(), content.strip()


def design_decisions(design: str) -> List[Decision]:
    """Rows of the Technical Decisions table plus bullets under ## Decisions."""
    decisions = []
    for row in extract_table_rows(design, "## Technical Decisions"):
        text = row[0] if row else ""
        if not text or is_placeholder(text):
            continue
        rationale = row[1] if len(row) > 1 and not is_placeholder(row[1]) else ""
        decisions.append(Decision(
            title=text, decision=text, context=rationale, source=DecisionSource.DESIGN
        ))
    for item in extract_list_items(design, "## Decisions"):
        decisions.append(Decision(title=item, decision=item, source=DecisionSource.DESIGN))
    return decisions


def component_learnings(design: str) -> List[str]:
    """'<Component>: <purpose>' for every ### component with a Purpose bullet."""
    lines = section_lines(design, "## Components") or []
    learnings = []
    current = ""
    for line in lines:
        stripped = line.strip()
        heading = parse_heading(stripped)
        if heading and heading[0] == 3:
            current = heading[1]
        elif stripped.startswith(PURPOSE_PREFIX) and current:
            purpose = stripped[len(PURPOSE_PREFIX):].strip()
            if purpose and not is_placeholder(purpose):
                learnings.append(f"{current}: {purpose}")
    return learnings


def communication_decisions(comms: List[Communication]) -> List[Decision]:
    return [
        Decision(
            title=comm.topic or comm.content,
            decision=comm.content,
            context=(
                f"From {comm.source} communication with {comm.contact} "
                f"on {comm.date.isoformat()}"
            ),
            source=DecisionSource.COMMUNICATION,
        )
        for comm in comms
        if comm.has_tag(CommunicationTag.DECISION) and comm.content
    ]


def dedupe_decisions(decisions: List[Decision]) -> List[Decision]:
    """Drop decisions whose text already appeared; the first source wins."""
    seen = set()
    unique = []
    for decision in decisions:
        key = decision.decision.strip()
        if key in seen:
            continue
        seen.add(key)
        unique.append(decision)
    return unique


# -----------------------------------------------------------------------------
# Extractor
# -----------------------------------------------------------------------------

class KnowledgeExtractor:
    """
    Provides:
    - extract_from_task: harvest knowledge from a ticket
    - extract_with_handoff: knowledge plus the HandoffDocument built from it
    - generate_handoff: build a HandoffDocument (not written)
    - update_wiki: create or append wiki pages
    - create_adr: promote a decision to an ADR
    """

    def __init__(
        self,
        documents: DocumentReader,
        communications: CommunicationReader,
        tasks: TaskReader,
        adr_manager: ADRManager,
        wiki_writer: WikiWriter,
        handoff_generator: Optional[HandoffGenerator] = None,
    ):
        self._documents = documents
        self._communications = communications
        self._tasks = tasks
        self._adr_manager = adr_manager
        self._wiki_writer = wiki_writer
        self._handoff = handoff_generator or HandoffGenerator()

    @property
    def handoff_generator(self) -> HandoffGenerator:
        return self._handoff

    def extract_from_task(self, task_id: str) -> ExtractedKnowledge:
        docs = self._documents.read_documents(task_id)
        return self.extract_from_documents(docs, self._communications.get_all_communications(task_id))

    def extract_from_documents(
        self, docs: TicketDocuments, comms: List[Communication]
    ) -> ExtractedKnowledge:
        task_id = docs.task_id

        learnings = extract_list_items(docs.notes, "## Learnings")
        if not learnings:
            learnings = extract_list_items(docs.notes, "## Key Learnings")
        overview = extract_section(docs.design, "## Overview")
        if overview and not is_placeholder(overview):
            learnings.append(overview)
        learnings.extend(component_learnings(docs.design))

        decisions = [
            Decision(title=item, decision=item, source=DecisionSource.CONTEXT)
            for item in extract_list_items(docs.context, "## Decisions Made")
        ]
        decisions.extend(design_decisions(docs.design))
        decisions.extend(communication_decisions(comms))

        wiki_updates = []
        for item in extract_list_items(docs.notes, "## Wiki Updates"):
            topic, content = split_topic(item)
            wiki_updates.append(WikiUpdate(topic=topic, content=content, task_id=task_id))

        runbook_updates = []
        for item in extract_list_items(docs.notes, "## Runbook Updates"):
            section, content = split_topic(item)
            runbook_updates.append(RunbookUpdate(section=section, content=content, task_id=task_id))

        knowledge = ExtractedKnowledge(
            task_id=task_id,
            learnings=learnings,
            decisions=dedupe_decisions(decisions),
            gotchas=extract_list_items(docs.notes, "## Gotchas"),
            wiki_updates=wiki_updates,
            runbook_updates=runbook_updates,
        )
        logger.debug(
            f"Extracted from {task_id}: {len(knowledge.learnings)} learnings, "
            f"{len(knowledge.decisions)} decisions, {len(knowledge.gotchas)} gotchas"
        )
        return knowledge

    def extract_with_handoff(self, task_id: str) -> Tuple[ExtractedKnowledge, HandoffDocument]:
        """Knowledge and the handoff built from it, from a single read of the ticket."""
        task = self._tasks.get_task(task_id, operation="generating handoff")
        docs = self._documents.read_documents(task_id)
        comms = self._communications.get_all_communications(task_id)
        knowledge = self.extract_from_documents(docs, comms)
        return knowledge, self._handoff.build(task, docs, knowledge)

    def generate_handoff(self, task_id: str) -> HandoffDocument:
        return self.extract_with_handoff(task_id)[1]

    def update_wiki(self, knowledge: ExtractedKnowledge) -> List[Path]:
        return self._wiki_writer.apply_all(knowledge.wiki_updates)

    def create_adr(self, decision: Decision, task_id: str) -> Path:
        return self._adr_manager.create_adr(decision, task_id)
