from .logger import (
    get_logger,
    log_stage,
    log_debug,
    log_warning,
    log_once_process,
    bind_request_id,
    current_request_id,
    bind_session_id,
    current_session_id,
    emit_request_error_summary,
    record_error,
    recorded_errors,
)

__all__ = [
    "get_logger",
    "log_stage",
    "log_debug",
    "log_warning",
    "log_once_process",
    "bind_request_id",
    "current_request_id",
    "bind_session_id",
    "current_session_id",
    "emit_request_error_summary",
    "record_error",
    "recorded_errors",
]
