"""
Structured errors for task and knowledge operations.

Every error carries a stable code, a human message and a details dict with
the operation name and task ID where one applies. Lower level exceptions are
chained with ``raise ... from`` so the full cause stays visible to callers.
"""

from typing import Any, Dict, List, Optional


class TaskBrainError(Exception):
    """Base error with structured details."""

    def __init__(self, code: str, message: str, details: Dict[str, Any] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


def _context(operation: Optional[str], task_id: Optional[str]) -> Dict[str, Any]:
    details: Dict[str, Any] = {}
    if operation:
        details["operation"] = operation
    if task_id:
        details["task_id"] = task_id
    return details


def _prefix(operation: Optional[str], task_id: Optional[str]) -> str:
    if operation and task_id:
        return f"{operation} {task_id}: "
    if operation:
        return f"{operation}: "
    return ""


class TaskNotFoundError(TaskBrainError):
    def __init__(self, task_id: str, operation: Optional[str] = None):
        super().__init__(
            code="NOT_FOUND",
            message=f"{_prefix(operation, task_id)}task '{task_id}' not found",
            details=_context(operation, task_id),
        )


class AlreadyArchivedError(TaskBrainError):
    def __init__(self, task_id: str, operation: str = "archiving task"):
        super().__init__(
            code="ALREADY_ARCHIVED",
            message=f"{_prefix(operation, task_id)}task is already archived",
            details=_context(operation, task_id),
        )


class NotArchivedError(TaskBrainError):
    def __init__(self, task_id: str, status: str, operation: str = "unarchiving task"):
        details = _context(operation, task_id)
        details["status"] = status
        super().__init__(
            code="NOT_ARCHIVED",
            message=f"{_prefix(operation, task_id)}task is not archived (status: {status})",
            details=details,
        )


class TaskParseError(TaskBrainError):
    """A persisted record could not be parsed. Affects only that record."""

    def __init__(
        self,
        path: str,
        reason: str,
        task_id: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        details = _context(operation, task_id)
        details["path"] = path
        details["reason"] = reason
        super().__init__(
            code="PARSE_ERROR",
            message=f"{_prefix(operation, task_id)}cannot parse {path}: {reason}",
            details=details,
        )


class StorageError(TaskBrainError):
    """Filesystem failure, wrapped with the offending path."""

    def __init__(
        self,
        path: str,
        reason: str,
        task_id: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        details = _context(operation, task_id)
        details["path"] = path
        details["reason"] = reason
        super().__init__(
            code="IO_ERROR",
            message=f"{_prefix(operation, task_id)}{path}: {reason}",
            details=details,
        )


class ValidationError(TaskBrainError):
    def __init__(
        self,
        errors: List[str],
        task_id: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        details = _context(operation, task_id)
        details["errors"] = errors
        super().__init__(
            code="VALIDATION_FAILED",
            message=f"{_prefix(operation, task_id)}{'; '.join(errors)}",
            details=details,
        )


class InvalidTransitionError(ValidationError):
    def __init__(self, task_id: str, current: str, target: str, allowed: List[str]):
        super().__init__(
            errors=[f"invalid transition {current} -> {target}; allowed: {allowed}"],
            task_id=task_id,
            operation="updating task status",
        )
        self.code = "INVALID_TRANSITION"
        self.details.update({"from": current, "to": target, "allowed": allowed})
