"""
Configuration

Defaults come from environment variables; an optional .taskconfig YAML file
in the base directory overrides them. The result is an immutable
TaskBrainConfig passed explicitly to every component.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ValidationError
from .fileio import read_yaml_file
from .task_model import Priority, parse_enum
from .ticket_paths import CONFIG_FILE

logger = logging.getLogger("config")

# -----------------------------------------------------------------------------
# Environment defaults
# -----------------------------------------------------------------------------
DEFAULT_HOME = Path(os.getenv("TASKBRAIN_HOME", "."))
DEFAULT_TASK_PREFIX = os.getenv("TASKBRAIN_TASK_PREFIX", "TASK")
DEFAULT_PRIORITY = os.getenv("TASKBRAIN_DEFAULT_PRIORITY", "P2")
DEFAULT_OWNER = os.getenv("TASKBRAIN_DEFAULT_OWNER", "")
TASK_ID_PAD_WIDTH = 5


@dataclass(frozen=True)
class TaskBrainConfig:
    """
    Settings for one workspace.

    FROZEN: build a new value with dataclasses.replace() instead of mutating.
    """
    base_path: Path
    task_id_prefix: str = "TASK"
    task_id_pad_width: int = TASK_ID_PAD_WIDTH
    default_priority: Priority = Priority.P2
    default_owner: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_path": str(self.base_path),
            "task_id_prefix": self.task_id_prefix,
            "task_id_pad_width": self.task_id_pad_width,
            "default_priority": self.default_priority.value,
            "default_owner": self.default_owner,
        }


def _validated(config: TaskBrainConfig) -> TaskBrainConfig:
    errors = []
    prefix = config.task_id_prefix
    if not prefix or not prefix.replace("_", "").isalnum() or not prefix.isupper():
        errors.append(f"task_id_prefix must be upper-case alphanumeric, got '{prefix}'")
    if config.task_id_pad_width < 0:
        errors.append("task_id_pad_width must not be negative")
    if errors:
        raise ValidationError(errors, operation="loading config")
    return config


def load_config(base_path: Optional[Path] = None) -> TaskBrainConfig:
    """Build the configuration for base_path (TASKBRAIN_HOME when omitted)."""
    base = Path(base_path) if base_path is not None else DEFAULT_HOME
    config = TaskBrainConfig(
        base_path=base,
        task_id_prefix=DEFAULT_TASK_PREFIX,
        default_priority=parse_enum(Priority, DEFAULT_PRIORITY, "priority"),
        default_owner=DEFAULT_OWNER,
    )

    config_file = base / CONFIG_FILE
    if not config_file.exists():
        return _validated(config)

    data = read_yaml_file(config_file)
    overrides: Dict[str, Any] = {}
    if "task_id_prefix" in data:
        overrides["task_id_prefix"] = str(data["task_id_prefix"])
    if "task_id_pad_width" in data:
        try:
            overrides["task_id_pad_width"] = int(data["task_id_pad_width"])
        except (TypeError, ValueError) as e:
            raise ValidationError(
                [f"task_id_pad_width must be an integer, got '{data['task_id_pad_width']}'"],
                operation="loading config",
            ) from e
    if "default_priority" in data:
        overrides["default_priority"] = parse_enum(
            Priority, data["default_priority"], "priority"
        )
    if "default_owner" in data:
        overrides["default_owner"] = str(data["default_owner"] or "")

    logger.info(f"Loaded {config_file} ({len(overrides)} overrides)")
    return _validated(replace(config, **overrides))
