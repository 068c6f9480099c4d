"""
Conflict Detector

Advisory check of proposed changes against recorded knowledge. Three corpora
are scanned in order:

1. Accepted ADRs in docs/decisions/ (severity high)
2. Design decisions of every other ticket, active and archived (medium)
3. Wiki pages in docs/wiki/ (medium)

A document conflicts when it shares at least CONFLICT_KEYWORD_THRESHOLD
significant keywords with the proposal. Matching is purely lexical; a
non-empty result is a prompt to review, never a block.
"""

import logging
from pathlib import Path
from typing import List

from .adr_manager import ADRManager
from .knowledge_extractor import design_decisions
from .knowledge_model import ADRStatus, Conflict, ConflictType, Severity
from .keywords import shared_keywords
from .markdown_sections import extract_title, truncate
from .ticket_paths import DESIGN_FILE, TicketLayout

logger = logging.getLogger("conflict_detector")

CONFLICT_KEYWORD_THRESHOLD = 2
EXCERPT_LENGTH = 200


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Skipping unreadable document {path}: {e}")
        return ""


class ConflictDetector:
    def __init__(self, layout: TicketLayout, adr_manager: ADRManager):
        self._layout = layout
        self._adr_manager = adr_manager

    def check_for_conflicts(self, task_id: str, proposed_changes: str) -> List[Conflict]:
        conflicts = []
        conflicts.extend(self._check_adrs(proposed_changes))
        conflicts.extend(self._check_previous_decisions(task_id, proposed_changes))
        conflicts.extend(self._check_wiki(proposed_changes))
        if conflicts:
            logger.info(f"{len(conflicts)} potential conflicts for {task_id}")
        return conflicts

    def _check_adrs(self, proposed: str) -> List[Conflict]:
        conflicts = []
        for adr in self._adr_manager.list_adrs():
            if adr.status.lower() != ADRStatus.ACCEPTED.value.lower() or not adr.decision:
                continue
            matched = shared_keywords(proposed, adr.decision)
            if len(matched) < CONFLICT_KEYWORD_THRESHOLD:
                continue
            name = Path(adr.path).name
            conflicts.append(Conflict(
                type=ConflictType.ADR_VIOLATION,
                source=name,
                description=(
                    f"Proposed changes may conflict with {adr.adr_id} \"{adr.title}\" "
                    f"(shared keywords: {', '.join(matched)}): {truncate(adr.decision, EXCERPT_LENGTH)}"
                ),
                recommendation=(
                    f"Review {name} and verify the proposed changes align with the accepted decision."
                ),
                severity=Severity.HIGH,
                matched_keywords=matched,
            ))
        return conflicts

    def _check_previous_decisions(self, task_id: str, proposed: str) -> List[Conflict]:
        conflicts = []
        for ticket_dir in self._layout.iter_ticket_dirs(include_archived=True):
            if ticket_dir.name == task_id:
                continue
            design_path = ticket_dir / DESIGN_FILE
            if not design_path.exists():
                continue
            decisions = design_decisions(_read(design_path))
            if not decisions:
                continue
            text = "\n".join(
                f"{d.decision} {d.context}".strip() for d in decisions
            )
            matched = shared_keywords(proposed, text)
            if len(matched) < CONFLICT_KEYWORD_THRESHOLD:
                continue
            other = ticket_dir.name
            conflicts.append(Conflict(
                type=ConflictType.PREVIOUS_DECISION,
                source=other,
                description=(
                    f"Proposed changes may conflict with decisions in task {other} "
                    f"(shared keywords: {', '.join(matched)}): {truncate(text, EXCERPT_LENGTH)}"
                ),
                recommendation=f"Review the decisions recorded in {other}/{DESIGN_FILE} before proceeding.",
                severity=Severity.MEDIUM,
                matched_keywords=matched,
            ))
        return conflicts

    def _check_wiki(self, proposed: str) -> List[Conflict]:
        wiki_dir = self._layout.wiki_dir
        if not wiki_dir.is_dir():
            return []
        conflicts = []
        for page in sorted(wiki_dir.glob("*.md")):
            content = _read(page)
            matched = shared_keywords(proposed, content)
            if len(matched) < CONFLICT_KEYWORD_THRESHOLD:
                continue
            title = extract_title(content) or page.name
            conflicts.append(Conflict(
                type=ConflictType.STAKEHOLDER_REQUIREMENT,
                source=page.name,
                description=(
                    f"Proposed changes may conflict with stakeholder requirement \"{title}\" "
                    f"in {page.name} (shared keywords: {', '.join(matched)})"
                ),
                recommendation=(
                    f"Review {page.name} and confirm the proposed changes satisfy the documented requirements."
                ),
                severity=Severity.MEDIUM,
                matched_keywords=matched,
            ))
        return conflicts
