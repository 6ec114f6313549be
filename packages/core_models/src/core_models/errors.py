from typing import Any, Optional
from core_logging.error_codes import ErrorCode


class PlannerError(Exception):
    """Base for engine errors that carry a canonical error code."""
    code: ErrorCode = ErrorCode.internal

    def __init__(self, message: str, *, details: Optional[Any] = None, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if code is not None:
            self.code = code


class NotFoundError(PlannerError):
    code = ErrorCode.not_found


class AllocationValidationError(PlannerError):
    """Raised only when repair leaves no valid allocation entry."""
    code = ErrorCode.validation_failed


class HierarchyError(PlannerError):
    code = ErrorCode.invalid_edge


class ConflictError(PlannerError):
    code = ErrorCode.conflict


class BackendUnavailable(PlannerError):
    """Storage read/write failed; callers retry on the next user edit."""
    code = ErrorCode.storage_unavailable


__all__ = [
    "PlannerError", "NotFoundError", "AllocationValidationError",
    "HierarchyError", "ConflictError", "BackendUnavailable",
]
