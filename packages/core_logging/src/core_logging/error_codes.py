from enum import Enum

class ErrorCode(str, Enum):
    """
    Canonical error codes for the public error envelope and log lines.
    """
    not_found                   = "not_found"
    validation_failed           = "validation_failed"
    invalid_edge                = "invalid_edge"
    conflict                    = "conflict"
    circular_update_suppressed  = "circular_update_suppressed"
    storage_unavailable         = "storage_unavailable"
    inconsistent_reference      = "inconsistent_reference"
    callback_failed             = "callback_failed"
    internal                    = "internal"

__all__ = ["ErrorCode"]
