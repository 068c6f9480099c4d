"""
File helpers shared by every store.

Multi-field files are never edited in place: the new content goes to a
sibling temp file which is then renamed over the original. A reader sees
either the old file or the new one, never a torn write.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import StorageError, TaskParseError

logger = logging.getLogger("fileio")


def atomic_write_text(
    path: Path,
    content: str,
    task_id: Optional[str] = None,
    create_parents: bool = True,
) -> None:
    """
    Write content to a temp file next to path and rename it into place.

    With create_parents=False a missing parent directory is a StorageError
    instead of being created.
    """
    path = Path(path)
    try:
        if create_parents:
            path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
    except OSError as e:
        raise StorageError(str(path), str(e), task_id=task_id, operation="writing file") from e

    temp_file = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        temp_file.replace(path)
    except OSError as e:
        logger.error(f"Atomic write failed for {path}: {e}")
        if temp_file.exists():
            temp_file.unlink()
        raise StorageError(str(path), str(e), task_id=task_id, operation="writing file") from e


def read_text(path: Path, task_id: Optional[str] = None) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise StorageError(str(path), str(e), task_id=task_id, operation="reading file") from e


def read_text_if_exists(path: Path, task_id: Optional[str] = None) -> str:
    """Return the file content, or an empty string when the file is absent."""
    if not Path(path).exists():
        return ""
    return read_text(path, task_id=task_id)


def dump_yaml(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(
        data, default_flow_style=False, sort_keys=False, allow_unicode=True
    )


def read_yaml_file(path: Path, task_id: Optional[str] = None) -> Dict[str, Any]:
    """Read and parse a YAML mapping. An empty file yields an empty dict."""
    text = read_text(path, task_id=task_id)
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise TaskParseError(str(path), str(e), task_id=task_id) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TaskParseError(
            str(path), f"expected a mapping, got {type(data).__name__}", task_id=task_id
        )
    return data


def write_yaml_file(path: Path, data: Dict[str, Any], task_id: Optional[str] = None) -> None:
    atomic_write_text(path, dump_yaml(data), task_id=task_id)
