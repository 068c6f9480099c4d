"""
Task ID generation.

IDs come from a persisted counter (.task_counter), never from counting
directories, so deleting a ticket never frees its number. The counter is also
checked against the highest ID already known to the registry, which repairs a
counter file that was lost or rolled back.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from .errors import TaskParseError
from .fileio import atomic_write_text, read_text

logger = logging.getLogger("task_id")


class TaskIDGenerator:
    """Formats IDs as <prefix>-<counter> with zero padding."""

    def __init__(self, counter_file: Path, prefix: str = "TASK", pad_width: int = 5):
        self._counter_file = Path(counter_file)
        self._prefix = prefix
        self._pad_width = pad_width
        self._id_re = re.compile(rf"^{re.escape(prefix)}-(\d+)$")

    def format(self, number: int) -> str:
        if self._pad_width > 0:
            return f"{self._prefix}-{number:0{self._pad_width}d}"
        return f"{self._prefix}-{number}"

    def number_of(self, task_id: str) -> Optional[int]:
        match = self._id_re.match(task_id)
        return int(match.group(1)) if match else None

    def current(self) -> int:
        """Last issued counter value, 0 when no counter file exists."""
        if not self._counter_file.exists():
            return 0
        raw = read_text(self._counter_file).strip()
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError as e:
            raise TaskParseError(str(self._counter_file), f"invalid counter '{raw}'") from e

    def next_id(self, known_ids: Iterable[str] = ()) -> str:
        """Advance the counter and return the new ID."""
        highest_known = max(
            (n for n in (self.number_of(i) for i in known_ids) if n is not None),
            default=0,
        )
        counter = self.current()
        if highest_known > counter:
            logger.warning(
                f"Task counter {counter} is behind registry maximum {highest_known}; advancing"
            )
            counter = highest_known
        counter += 1
        atomic_write_text(self._counter_file, str(counter))
        return self.format(counter)
