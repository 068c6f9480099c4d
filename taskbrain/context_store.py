"""
Read access to the three markdown artifacts of a ticket.
"""

from dataclasses import dataclass

from .errors import TaskNotFoundError
from .fileio import read_text_if_exists
from .ticket_paths import CONTEXT_FILE, DESIGN_FILE, NOTES_FILE, TicketLayout


@dataclass
class TicketDocuments:
    """Raw notes.md, context.md and design.md. Missing files are empty strings."""
    task_id: str
    notes: str = ""
    context: str = ""
    design: str = ""


class ContextStore:
    def __init__(self, layout: TicketLayout):
        self._layout = layout

    def read_documents(self, task_id: str) -> TicketDocuments:
        if not self._layout.exists(task_id):
            raise TaskNotFoundError(task_id, operation="reading ticket documents")
        ticket_dir = self._layout.resolve_dir(task_id)
        return TicketDocuments(
            task_id=task_id,
            notes=read_text_if_exists(ticket_dir / NOTES_FILE, task_id),
            context=read_text_if_exists(ticket_dir / CONTEXT_FILE, task_id),
            design=read_text_if_exists(ticket_dir / DESIGN_FILE, task_id),
        )
