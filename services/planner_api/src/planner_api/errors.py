from __future__ import annotations
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core_logging import current_request_id, get_logger, log_stage, record_error
from core_logging.error_codes import ErrorCode
from core_models.errors import (
    BackendUnavailable, ConflictError, HierarchyError, NotFoundError, PlannerError,
    AllocationValidationError,
)
from core_utils import jsonx
from core_utils.ids import generate_request_id

# Most specific first; PlannerError subclasses fall through to 400.
_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (HierarchyError, 400),
    (AllocationValidationError, 400),
    (BackendUnavailable, 503),
)


def status_for(exc: PlannerError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


def error_envelope(code: ErrorCode | str, message: str, *, details: object | None = None,
                   request_id: str | None = None) -> dict:
    """Canonical error body: ``{error: {code, message, details?, request_id}, request_id}``."""
    req_id = request_id or current_request_id() or generate_request_id()
    code_value = code.value if isinstance(code, ErrorCode) else str(code)
    payload = {
        "error": {"code": code_value, "message": message, "request_id": req_id},
        "request_id": req_id,
    }
    if details is not None:
        payload["error"]["details"] = jsonx.sanitize(details)
    return payload


def attach_standard_error_handlers(app: FastAPI, *, service: str) -> None:
    """
    Uniform error shaping:
      - PlannerError subclasses -> 404 / 409 / 400 / 503 with their code
      - 422: Pydantic request validation
      - Starlette HTTP errors keep their status, JSON body
      - 500: catch-all with code ``internal``
    """
    logger = get_logger(service)

    @app.exception_handler(PlannerError)
    async def _planner_exc_handler(request: Request, exc: PlannerError):
        status = status_for(exc)
        log_stage(logger, "request", "planner_error", status=status, error_code=exc.code.value,
                  error=exc.message, url=str(request.url.path), method=request.method)
        if status >= 500:
            record_error(exc.code, where=f"{request.method} {request.url.path}",
                         message=exc.message, logger=logger)
        return JSONResponse(status_code=status,
                            content=error_envelope(exc.code, exc.message, details=exc.details))

    @app.exception_handler(RequestValidationError)
    async def _validation_exc_handler(request: Request, exc: RequestValidationError):
        errors = jsonx.sanitize(exc.errors())
        log_stage(logger, "validation", "failed", errors=errors,
                  url=str(request.url.path), method=request.method)
        return JSONResponse(
            status_code=422,
            content=error_envelope(ErrorCode.validation_failed, "Request validation failed",
                                   details={"errors": errors}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(_: Request, exc: StarletteHTTPException):
        code = ErrorCode.not_found if exc.status_code == 404 else ErrorCode.internal
        return JSONResponse(status_code=exc.status_code,
                            content=error_envelope(code, str(exc.detail)))

    @app.exception_handler(Exception)
    async def _unhandled_exc_handler(request: Request, exc: Exception):
        record_error(ErrorCode.internal, where=f"{request.method} {request.url.path}",
                     message=str(exc), logger=logger, error_type=exc.__class__.__name__)
        return JSONResponse(
            status_code=500,
            content=error_envelope(ErrorCode.internal, "Unexpected error",
                                   details={"type": exc.__class__.__name__, "message": str(exc)}),
        )


__all__ = ["attach_standard_error_handlers", "error_envelope", "status_for"]
