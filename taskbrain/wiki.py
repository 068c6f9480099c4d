"""
Wiki page writer.

Each WikiUpdate becomes a page under docs/wiki/ (or the explicit wiki_path
relative to the base directory). New pages get a title; existing pages get
an attributed "Update from <task>" section appended. Every write replaces
the page atomically.
"""

import logging
from pathlib import Path
from typing import List

from .errors import ValidationError
from .fileio import atomic_write_text, read_text_if_exists
from .knowledge_model import WikiUpdate
from .markdown_sections import slugify

logger = logging.getLogger("wiki")


class WikiWriter:
    def __init__(self, base_path: Path, wiki_dir: Path):
        self._base_path = Path(base_path).resolve()
        self._wiki_dir = Path(wiki_dir)

    def page_path(self, update: WikiUpdate) -> Path:
        if not update.wiki_path:
            return self._wiki_dir / f"{slugify(update.topic, fallback='page')}.md"
        path = Path(update.wiki_path)
        if not path.is_absolute():
            path = self._base_path / path
        resolved = path.resolve()
        if self._base_path not in resolved.parents:
            raise ValidationError(
                [f"wiki path {update.wiki_path} is outside {self._base_path}"],
                task_id=update.task_id,
                operation="updating wiki",
            )
        return resolved

    def apply(self, update: WikiUpdate) -> Path:
        path = self.page_path(update)
        existing = read_text_if_exists(path, task_id=update.task_id)
        footer = f"---\n*Learned from {update.task_id}*\n"
        if existing:
            content = (
                existing.rstrip("\n")
                + f"\n\n## Update from {update.task_id}\n\n{update.content}\n\n{footer}"
            )
        else:
            content = f"# {update.topic}\n\n{update.content}\n\n{footer}"
        atomic_write_text(path, content, task_id=update.task_id)
        logger.info(f"Wiki page {path.name} updated from {update.task_id}")
        return path

    def apply_all(self, updates: List[WikiUpdate]) -> List[Path]:
        return [self.apply(update) for update in updates]
