import logging, sys, orjson, os, asyncio
from typing import Any, Optional, Dict, List
from contextlib import contextmanager
import time
import contextvars

# ────────────────────────────────────────────────────────────
# Per-context error crumbs (rolled up once per request)
# ────────────────────────────────────────────────────────────
_ERRORS: contextvars.ContextVar[Optional[List[Dict[str, Any]]]] = \
    contextvars.ContextVar("_ERRORS", default=None)

def _error_crumbs() -> List[Dict[str, Any]]:
    crumbs = _ERRORS.get()
    if crumbs is None:
        crumbs = []
        _ERRORS.set(crumbs)
    return crumbs

def record_error(
    code: str,
    *,
    where: str,
    message: str,
    logger: logging.Logger,
    action: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    level: str = "ERROR",
    **extras: Any,
) -> None:
    """
    Emit one normalized error line *and* stash a structured crumb for the
    end-of-request error summary. Safe to call from any failure path.
    """
    code = getattr(code, "value", code)
    crumb = {
        "code": str(code),
        "where": str(where),
        "message": str(message),
        **({"action": action} if action else {}),
        **({"context": context} if isinstance(context, dict) else {}),
    }
    _error_crumbs().append(crumb)
    lvl = (level or "ERROR").upper()
    levelno = getattr(logging, lvl, logging.ERROR)
    payload = {
        "stage": extras.pop("stage", None) or "error",
        "error_code": str(code),
        "error_message": message,
        "where": where,
        **({"action": action} if action else {}),
        **({"context": context} if isinstance(context, dict) else {}),
        **extras,
    }
    logger.log(levelno, "error", extra=_sanitize_extra(payload))

def recorded_errors() -> List[Dict[str, Any]]:
    """Return the error crumbs recorded in the current context."""
    return list(_ERRORS.get() or [])

def emit_request_error_summary(logger: logging.Logger, *, service: Optional[str] = None) -> None:
    """
    Emit a single compact ERROR rollup when the current request accumulated
    any errors, then reset the crumbs. No-op if none were recorded.
    """
    crumbs = _ERRORS.get()
    if not crumbs:
        return
    payload: Dict[str, Any] = {
        "stage": "summary",
        "service": service or os.getenv("SERVICE_NAME") or logger.name,
        "error_count": len(crumbs),
        "errors": crumbs[:50],  # guard against pathological fan-out
    }
    rid = current_request_id()
    if rid:
        payload["request_id"] = rid
    payload["cause"] = (crumbs[0].get("code") or "unknown").split(".", 1)[0]
    logger.error("request_error_summary", extra=_sanitize_extra(payload))
    _ERRORS.set(None)

# ────────────────────────────────────────────────────────────
# Context binding (request id, editing session id)
# ────────────────────────────────────────────────────────────
_REQUEST_ID: contextvars.ContextVar[Optional[str]] = \
    contextvars.ContextVar("_REQUEST_ID", default=None)
_SESSION_ID: contextvars.ContextVar[Optional[str]] = \
    contextvars.ContextVar("_SESSION_ID", default=None)

def bind_request_id(request_id: Optional[str]) -> None:
    """Bind the current request_id into the local context for log injection."""
    _REQUEST_ID.set(request_id)

def current_request_id() -> Optional[str]:
    """Return the currently bound request_id (if any)."""
    return _REQUEST_ID.get()

def bind_session_id(session_id: Optional[str]) -> None:
    """Bind the editing session that owns the current sync pass."""
    _SESSION_ID.set(session_id)

def current_session_id() -> Optional[str]:
    return _SESSION_ID.get()


class _ContextIdFilter(logging.Filter):
    """Inject bound request/session ids into LogRecords that lack them."""
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            rid = _REQUEST_ID.get()
            if rid:
                record.request_id = rid
        if getattr(record, "session_id", None) is None:
            sid = _SESSION_ID.get()
            if sid:
                record.session_id = sid
        return True

# Reserved LogRecord attributes we must not overwrite
_RESERVED: set[str] = {
    "name","msg","args","levelname","levelno",
    "pathname","filename","module","exc_info","exc_text","stack_info",
    "lineno","funcName","created","msecs","relativeCreated",
    "thread","threadName","processName","process","message","asctime",
    "taskName",
}

# Top-level fields of the log envelope
_TOP_LEVEL: set[str] = {
    "ts",                 # ISO-8601 UTC
    "level",              # INFO|DEBUG|…
    "service",            # planner_api|core_sync|…
    "stage",              # sync|guard|hierarchy|…
    "latency_ms",
    "request_id",
    "session_id",
    "node_id",
    "node_type",
    "message",            # preserved human message
    "status_code",
    "path",
    "method",
}

def _default(obj):
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="ignore")
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)

class JsonFormatter(logging.Formatter):
    """Emit structured JSON log lines.

    Top-level keys come from ``_TOP_LEVEL``; everything else is nested under ``meta``.
    """

    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(getattr(record, "created", time.time()))),
            "level": record.levelname,
            "service": os.getenv("SERVICE_NAME", record.name),
            # Canonical event key (do not duplicate as `message`)
            "event": record.getMessage(),
        }
        meta: Dict[str, Any] = {}
        for key, val in record.__dict__.items():
            if key in _RESERVED:
                continue
            if key in _TOP_LEVEL:
                base[key] = val
            else:
                meta[key] = val

        msg_extra = record.__dict__.get("message_extra", None)
        if msg_extra is not None:
            base["message"] = msg_extra
            meta.pop("message_extra", None)

        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)

        if meta:
            base["meta"] = meta

        return orjson.dumps(base, default=_default).decode("utf-8")

class StructuredLogger(logging.Logger):
    """
    A drop-in `logging.Logger` replacement that **accepts arbitrary keyword
    arguments** (e.g. `logger.info("msg", stage="sync")`) and transparently
    merges them into the `extra` mapping.
    """

    def _log(                                   # noqa: PLR0913 – keep signature
        self,
        level: int,
        msg: str,
        args,
        exc_info=None,
        extra: Dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        if kwargs:                              # merge kw-args → extra-dict
            extra = {**(extra or {}), **kwargs}
        extra = _sanitize_extra(extra)
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel,
        )


class DynamicStdoutHandler(logging.StreamHandler):
    """
    Ensures every *emit* writes to **the current** `sys.stdout`.

    Tests that swap `sys.stdout` after the logger was created still capture
    the line.
    """

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        self.setStream(sys.stdout)
        super().emit(record)


# Make the subclass the default for *new* loggers created after this import
logging.setLoggerClass(StructuredLogger)


def get_logger(name: str = "app", level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    is_service_root = "." not in name  # only top-level names own handlers

    if is_service_root:
        if not logger.handlers:
            handler = DynamicStdoutHandler()
            handler.setFormatter(JsonFormatter())
            logger.addHandler(handler)
        # Service roots stop propagation only when asked to; pytest's caplog
        # relies on records reaching the root logger.
        logger.propagate = os.getenv("LOG_PROPAGATE", "1").lower() in ("1", "true", "yes")
    else:
        # Leaf/module loggers never own handlers; let them bubble to the service root.
        for h in list(logger.handlers):
            logger.removeHandler(h)
        logger.propagate = True

    logger.setLevel(level or os.getenv("SERVICE_LOG_LEVEL", "INFO"))
    if not any(isinstance(f, _ContextIdFilter) for f in getattr(logger, "filters", [])):
        logger.addFilter(_ContextIdFilter())
    return logger

def log_debug(logger: logging.Logger, stage: str, event: str, **extras: Any) -> None:
    """Debug-level stage line (suppressed circular updates, no-op publishes)."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(event, extra=_sanitize_extra({"stage": stage, **extras}))

def log_warning(logger: logging.Logger, stage: str, event: str, **extras: Any) -> None:
    logger.warning(event, extra=_sanitize_extra({"stage": stage, **extras}))

def _emit_stage_log(logger: logging.Logger, stage: str, event: str, **extras: Any):
    payload = {"stage": stage, **extras}
    logger.info(event, extra=_sanitize_extra(payload))

# ---------------------------------------------------------------------------#
# log_stage – imperative **and** decorator utility                            #
# ---------------------------------------------------------------------------#
def log_stage(logger: logging.Logger, stage: str, event: str, **fixed: Any):
    """
    *Imperative*  →  log_stage(logger, "hierarchy", "rollup.done", node_id=nid)
    *Decorator*   →  @log_stage(logger, "hierarchy", "recalculate")
                     async def recalculate(...):
                         ...
    Also exposes ``.ctx`` for use as a context manager.
    """
    _emit_stage_log(logger, stage, event, **fixed)

    def _decorator(fn):
        if asyncio.iscoroutinefunction(fn):
            async def _aw(*a, **kw):
                t0 = time.perf_counter()
                try:
                    return await fn(*a, **kw)
                finally:
                    _emit_stage_log(
                        logger, stage, f"{event}.done",
                        latency_ms=(time.perf_counter() - t0) * 1000,
                        **fixed,
                    )
            return _aw

        def _w(*a, **kw):
            t0 = time.perf_counter()
            try:
                return fn(*a, **kw)
            finally:
                _emit_stage_log(
                    logger, stage, f"{event}.done",
                    latency_ms=(time.perf_counter() - t0) * 1000,
                    **fixed,
                )
        return _w

    @contextmanager
    def _ctx(**dynamic):
        _emit_stage_log(logger, stage, f"{event}.start", **(fixed | dynamic))
        t0 = time.perf_counter()
        try:
            yield
        finally:
            _emit_stage_log(
                logger, stage, f"{event}.done",
                latency_ms=(time.perf_counter() - t0) * 1000,
                **(fixed | dynamic),
            )

    _decorator.ctx = _ctx
    return _decorator

def _sanitize_extra(extra: Dict[str, Any] | None) -> Dict[str, Any]:
    """
    Remove/rename keys in `extra` that would collide with LogRecord attributes.
    - `message` is remapped to `message_extra` to preserve content.
    - all other collisions are namespaced as `meta_<key>`.
    """
    if not extra:
        return {}
    safe: Dict[str, Any] = {}
    for k, v in extra.items():
        lk = str(k)
        # Flatten user-provided nested `meta` to avoid meta.meta
        if lk == "meta" and isinstance(v, dict):
            for mk, mv in v.items():
                mk_norm = str(mk)
                if mk_norm in _RESERVED:
                    safe[f"meta_{mk_norm}"] = mv
                else:
                    safe[mk_norm] = mv
            continue

        if lk in _RESERVED:
            if lk == "message":
                safe["message_extra"] = v
            else:
                safe[f"meta_{lk}"] = v
        else:
            safe[lk] = v
    return safe

# ---------------------------------------------------------------------------#
# log_once_process – emit a line only once per process key                    #
# ---------------------------------------------------------------------------#
_ONCE_KEYS: set[str] = set()
def log_once_process(logger: logging.Logger, key: str, *, level: int = logging.INFO, event: str, **kwargs: Any) -> None:
    """
    Emit a structured log exactly once per *key* for the lifetime of the process.
    Useful for one-shot diagnostics (e.g., storage falling back to stub mode).
    """
    if key in _ONCE_KEYS:
        return
    _ONCE_KEYS.add(key)
    logger.log(level, event, extra=_sanitize_extra(kwargs))
