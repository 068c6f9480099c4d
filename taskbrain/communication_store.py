"""
Communication Store

Stakeholder communications are markdown files under
tickets/<id>/communications/, named YYYY-MM-DD-source-contact-topic.md.
Files are parsed back best-effort: unknown tags and unreadable dates are
dropped with a warning, never raised.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import List

from .errors import StorageError, TaskNotFoundError
from .markdown_sections import extract_field, extract_section, list_items, slugify
from .task_model import Communication, CommunicationTag
from .ticket_paths import COMMUNICATIONS_DIR, TicketLayout

logger = logging.getLogger("communication_store")

MAX_TOPIC_SLUG = 50


def communication_filename(comm: Communication) -> str:
    parts = [
        comm.date.isoformat(),
        slugify(comm.source, fallback="unknown"),
        slugify(comm.contact, fallback="unknown"),
        slugify(comm.topic, max_length=MAX_TOPIC_SLUG, fallback="note"),
    ]
    return "-".join(parts) + ".md"


def format_communication(comm: Communication) -> str:
    lines = [
        f"# {comm.topic}",
        "",
        f"**Date:** {comm.date.isoformat()}",
        f"**Source:** {comm.source}",
        f"**Contact:** {comm.contact}",
        f"**Topic:** {comm.topic}",
        "",
        "## Content",
        "",
        comm.content.strip(),
        "",
        "## Tags",
    ]
    lines.extend(f"- {tag.value}" for tag in comm.tags)
    return "\n".join(lines) + "\n"


def parse_communication(content: str, filename: str = "") -> Communication:
    raw_date = extract_field(content, "Date")
    try:
        comm_date = datetime.strptime(raw_date, "%Y-%m-%d").date()
    except ValueError:
        if raw_date:
            logger.warning(f"Unreadable date '{raw_date}' in {filename}")
        comm_date = date.min

    tags = []
    for raw_tag in list_items(extract_section(content, "## Tags")):
        try:
            tags.append(CommunicationTag(raw_tag.strip().lower()))
        except ValueError:
            logger.warning(f"Ignoring unknown tag '{raw_tag}' in {filename}")

    return Communication(
        date=comm_date,
        source=extract_field(content, "Source"),
        contact=extract_field(content, "Contact"),
        topic=extract_field(content, "Topic"),
        content=extract_section(content, "## Content"),
        tags=tags,
        filename=filename,
    )


class CommunicationStore:
    """Reads and appends communications in a task's ticket directory."""

    def __init__(self, layout: TicketLayout):
        self._layout = layout

    def _comms_dir(self, task_id: str) -> Path:
        return self._layout.resolve_dir(task_id) / COMMUNICATIONS_DIR

    def add_communication(self, task_id: str, comm: Communication) -> Path:
        """Write a new communication file; never overwrites an existing one."""
        if not self._layout.exists(task_id):
            raise TaskNotFoundError(task_id, operation="adding communication")

        comms_dir = self._comms_dir(task_id)
        filename = communication_filename(comm)
        stem = filename[:-len(".md")]
        try:
            comms_dir.mkdir(parents=True, exist_ok=True)
            suffix = 1
            while True:
                path = comms_dir / filename
                try:
                    with open(path, "x", encoding="utf-8") as f:
                        f.write(format_communication(comm))
                    break
                except FileExistsError:
                    suffix += 1
                    filename = f"{stem}-{suffix}.md"
        except OSError as e:
            raise StorageError(
                str(comms_dir), str(e), task_id=task_id, operation="adding communication"
            ) from e

        logger.info(f"Added communication {filename} to {task_id}")
        return path

    def get_all_communications(self, task_id: str) -> List[Communication]:
        """All parsed communications in filename order. Missing dir yields []."""
        comms_dir = self._comms_dir(task_id)
        if not comms_dir.is_dir():
            return []

        comms = []
        for path in sorted(comms_dir.glob("*.md")):
            try:
                content = path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Skipping unreadable communication {path}: {e}")
                continue
            comms.append(parse_communication(content, filename=path.name))
        return comms

    def search_communications(self, task_id: str, query: str) -> List[Communication]:
        """Case-insensitive substring match over content, source, contact, topic, date."""
        needle = query.lower()
        return [
            comm for comm in self.get_all_communications(task_id)
            if any(needle in field.lower() for field in (
                comm.content, comm.source, comm.contact, comm.topic, comm.date.isoformat()
            ))
        ]
