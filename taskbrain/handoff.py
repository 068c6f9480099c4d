"""
Handoff Generator

Builds the handoff summary written into a ticket when it is archived. The
layout is fixed (Summary, Completed Work, Open Items, Key Learnings,
Decisions Made, Gotchas, Related Documentation, Provenance) and the
Provenance section always names the task ID.

A handoff is written once per archive cycle. If a ticket already holds one
from an earlier cycle, that file is rotated to handoff-<timestamp>.md first.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .context_store import TicketDocuments
from .errors import StorageError
from .fileio import atomic_write_text
from .knowledge_model import Decision, ExtractedKnowledge, HandoffDocument
from .markdown_sections import extract_list_items, extract_section
from .task_model import Task, utc_now
from .ticket_paths import CONTEXT_FILE, DESIGN_FILE, HANDOFF_FILE, NOTES_FILE

logger = logging.getLogger("handoff")

ROTATION_FORMAT = "%Y%m%dT%H%M%SZ"


def _bullets(items: List[str], empty: str, prefix: str = "- ") -> List[str]:
    if not items:
        return [f"_{empty}_"]
    return [f"{prefix}{item}" for item in items]


def _decision_line(decision: Decision) -> str:
    if decision.title and decision.title != decision.decision:
        return f"**{decision.title}**: {decision.decision}"
    return decision.decision


@dataclass
class StagedHandoff:
    """A handoff written into a ticket dir, undoable until the archive commits."""
    path: Path
    rotated_to: Optional[Path] = None

    def rollback(self) -> None:
        if self.path.exists():
            self.path.unlink()
        if self.rotated_to is not None and self.rotated_to.exists():
            self.rotated_to.replace(self.path)


class HandoffGenerator:

    def build(
        self,
        task: Task,
        documents: TicketDocuments,
        knowledge: ExtractedKnowledge,
    ) -> HandoffDocument:
        summary = extract_section(documents.context, "## Summary")
        if not summary:
            summary = f"Task {task.id} ({task.type.value}): {task.title}"

        open_items = extract_list_items(documents.context, "## Next Steps")
        open_items += extract_list_items(documents.context, "## Open Questions")

        related = [
            name for name, text in (
                (NOTES_FILE, documents.notes),
                (CONTEXT_FILE, documents.context),
                (DESIGN_FILE, documents.design),
            ) if text
        ]
        related += extract_list_items(documents.context, "## Related Resources")
        related += extract_list_items(documents.design, "## Related ADRs")

        return HandoffDocument(
            task_id=task.id,
            summary=summary,
            completed_work=extract_list_items(documents.context, "## Recent Progress"),
            open_items=open_items,
            learnings=list(knowledge.learnings),
            related_docs=related,
            generated_at=utc_now(),
            decisions=list(knowledge.decisions),
            gotchas=list(knowledge.gotchas),
        )

    def render(self, handoff: HandoffDocument) -> str:
        lines = [
            f"# Handoff: {handoff.task_id}",
            "",
            f"**Generated:** {handoff.generated_at}",
            "**Status:** Archived",
            "",
            "## Summary",
            "",
            handoff.summary,
            "",
            "## Completed Work",
            "",
            *_bullets(handoff.completed_work, "Nothing recorded."),
            "",
            "## Open Items",
            "",
            *_bullets(handoff.open_items, "None.", prefix="- [ ] "),
            "",
            "## Key Learnings",
            "",
            *_bullets(handoff.learnings, "None recorded."),
            "",
            "## Decisions Made",
            "",
            *_bullets([_decision_line(d) for d in handoff.decisions], "None recorded."),
            "",
            "## Gotchas",
            "",
            *_bullets(handoff.gotchas, "None recorded."),
            "",
            "## Related Documentation",
            "",
            *_bullets(handoff.related_docs, "None."),
            "",
            "## Provenance",
            "",
            f"This handoff was generated from {handoff.task_id} communications and notes.",
        ]
        return "\n".join(lines) + "\n"

    def write(self, ticket_dir: Path, content: str, task_id: str) -> StagedHandoff:
        """
        Write handoff.md into ticket_dir, rotating any previous one out of the way.

        ticket_dir must already exist; it is never created here.
        """
        target = Path(ticket_dir) / HANDOFF_FILE
        rotated = None
        if target.exists():
            rotated = self._rotation_path(target)
            try:
                target.replace(rotated)
            except OSError as e:
                raise StorageError(str(target), str(e), task_id=task_id, operation="rotating handoff") from e
            logger.info(f"Rotated previous handoff for {task_id} to {rotated.name}")

        staged = StagedHandoff(path=target, rotated_to=rotated)
        try:
            atomic_write_text(target, content, task_id=task_id, create_parents=False)
        except StorageError:
            staged.rollback()
            raise
        return staged

    @staticmethod
    def _rotation_path(target: Path) -> Path:
        stamp = datetime.now(timezone.utc).strftime(ROTATION_FORMAT)
        candidate = target.with_name(f"handoff-{stamp}.md")
        suffix = 1
        while candidate.exists():
            suffix += 1
            candidate = target.with_name(f"handoff-{stamp}-{suffix}.md")
        return candidate
