"""
ADR Manager

Architecture decision records live in docs/decisions/ as
ADR-NNNN-<slug>.md. Numbers are never reused: the next number is the highest
number found in the directory plus one, and files are opened with exclusive
create so two writers racing for the same number cannot overwrite each other.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .errors import StorageError, ValidationError
from .knowledge_model import ADRRecord, ADRStatus, Decision
from .markdown_sections import extract_field, extract_section, extract_title, slugify

logger = logging.getLogger("adr_manager")

ADR_FILENAME_RE = re.compile(r"^ADR-(\d+)-.*\.md$")
ADR_NUMBER_WIDTH = 4
MAX_CREATE_ATTEMPTS = 50


def adr_id(number: int) -> str:
    return f"ADR-{number:0{ADR_NUMBER_WIDTH}d}"


def format_adr(
    number: int,
    decision: Decision,
    task_id: str,
    status: ADRStatus = ADRStatus.ACCEPTED,
    adr_date: Optional[str] = None,
) -> str:
    adr_date = adr_date or datetime.now(timezone.utc).strftime("%Y-%m-%d")
    lines = [
        f"# {adr_id(number)}: {decision.title}",
        "",
        f"**Status:** {status.value}",
        f"**Date:** {adr_date}",
        f"**Source:** {task_id}",
        "",
        "## Context",
        "",
        decision.context or "No context recorded.",
        "",
        "## Decision",
        "",
        decision.decision,
        "",
        "## Consequences",
        "",
    ]
    lines.extend(f"- {c}" for c in decision.consequences)
    lines.extend(["", "## Alternatives Considered", ""])
    lines.extend(f"- {a}" for a in decision.alternatives)
    return "\n".join(lines).rstrip() + "\n"


def parse_adr(path: Path, content: str) -> Optional[ADRRecord]:
    """Parse an ADR file back into a record; None when the name doesn't match."""
    match = ADR_FILENAME_RE.match(path.name)
    if not match:
        return None
    number = int(match.group(1))
    title = extract_title(content)
    prefix = f"{adr_id(number)}: "
    if title.startswith(prefix):
        title = title[len(prefix):]
    return ADRRecord(
        adr_id=adr_id(number),
        number=number,
        title=title,
        status=extract_field(content, "Status"),
        date=extract_field(content, "Date"),
        source_task=extract_field(content, "Source"),
        context=extract_section(content, "## Context"),
        decision=extract_section(content, "## Decision"),
        path=str(path),
    )


class ADRManager:
    """Creates and lists ADRs in one decisions directory."""

    def __init__(self, decisions_dir: Path):
        self._decisions_dir = Path(decisions_dir)

    @property
    def decisions_dir(self) -> Path:
        return self._decisions_dir

    def existing_numbers(self) -> List[int]:
        if not self._decisions_dir.is_dir():
            return []
        numbers = []
        for path in self._decisions_dir.iterdir():
            match = ADR_FILENAME_RE.match(path.name)
            if match:
                numbers.append(int(match.group(1)))
        return sorted(numbers)

    def next_number(self) -> int:
        return max(self.existing_numbers(), default=0) + 1

    def create_adr(
        self,
        decision: Decision,
        task_id: str,
        status: ADRStatus = ADRStatus.ACCEPTED,
    ) -> Path:
        """Write a new ADR and return its path."""
        operation = "creating ADR"
        if not decision.title.strip() or not decision.decision.strip():
            raise ValidationError(
                ["decision needs a title and decision text"], task_id=task_id, operation=operation
            )

        try:
            self._decisions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(str(self._decisions_dir), str(e), task_id=task_id, operation=operation) from e

        slug = slugify(decision.title)
        for _ in range(MAX_CREATE_ATTEMPTS):
            number = self.next_number()
            path = self._decisions_dir / f"{adr_id(number)}-{slug}.md"
            try:
                with open(path, "x", encoding="utf-8") as f:
                    f.write(format_adr(number, decision, task_id, status))
            except FileExistsError:
                logger.warning(f"{path.name} appeared concurrently; retrying with next number")
                continue
            except OSError as e:
                raise StorageError(str(path), str(e), task_id=task_id, operation=operation) from e
            logger.info(f"Created {adr_id(number)} from {task_id}: {decision.title}")
            return path

        raise StorageError(
            str(self._decisions_dir),
            f"could not claim an ADR number after {MAX_CREATE_ATTEMPTS} attempts",
            task_id=task_id,
            operation=operation,
        )

    def list_adrs(self) -> List[ADRRecord]:
        """All parseable ADRs ordered by number. Unreadable files are skipped."""
        if not self._decisions_dir.is_dir():
            return []
        records = []
        for path in sorted(self._decisions_dir.glob("ADR-*.md")):
            try:
                content = path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Skipping unreadable ADR {path}: {e}")
                continue
            record = parse_adr(path, content)
            if record is not None:
                records.append(record)
        return sorted(records, key=lambda r: r.number)
