from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from core_logging import get_logger, log_debug, record_error
from core_logging.error_codes import ErrorCode
import core_metrics

logger = get_logger("core_sync.debounce")

DebounceKey = Tuple[str, str]          # (node_id, field)
TaskFn = Callable[[], Awaitable[Any]]


@dataclass
class _Pending:
    fn: TaskFn
    task: "asyncio.Task[Any]"
    delay_ms: float


class DebouncedScheduler:
    """
    Trailing debounce keyed by ``(node_id, field)``.

    Every ``schedule`` call for a key replaces the previous pending call and
    restarts its timer. When the timer fires, ``should_skip(key)`` is asked
    first; a skipped fire is dropped, not rescheduled. ``cancel`` discards
    pending work; ``flush`` runs it now (node teardown).
    """

    def __init__(self, *, should_skip: Optional[Callable[[DebounceKey], bool]] = None) -> None:
        self._pending: Dict[DebounceKey, _Pending] = {}
        self._should_skip = should_skip

    def schedule(self, key: DebounceKey, fn: TaskFn, delay_ms: float) -> None:
        self.cancel(key, _log=False)
        task = asyncio.get_running_loop().create_task(self._fire_later(key, fn, delay_ms))
        self._pending[key] = _Pending(fn=fn, task=task, delay_ms=delay_ms)
        core_metrics.gauge("debounce_pending", len(self._pending))
        log_debug(logger, "debounce", "debounce.scheduled", node_id=key[0], field=key[1], delay_ms=delay_ms)

    def pending(self, key: DebounceKey) -> bool:
        return key in self._pending

    def pending_keys(self, node_id: Optional[str] = None) -> List[DebounceKey]:
        return [k for k in self._pending if node_id is None or k[0] == node_id]

    def cancel(self, key: DebounceKey, *, _log: bool = True) -> bool:
        p = self._pending.pop(key, None)
        if p is None:
            return False
        if p.task is not asyncio.current_task():
            p.task.cancel()
        if _log:
            log_debug(logger, "debounce", "debounce.cancelled", node_id=key[0], field=key[1])
        return True

    def cancel_node(self, node_id: str) -> int:
        keys = self.pending_keys(node_id)
        for k in keys:
            self.cancel(k)
        return len(keys)

    async def flush(self, node_id: Optional[str] = None) -> int:
        """Run pending work for *node_id* (or everything) immediately."""
        keys = self.pending_keys(node_id)
        for k in keys:
            p = self._pending.pop(k, None)
            if p is None:
                continue
            p.task.cancel()
            await self._run(k, p.fn)
        return len(keys)

    def close(self) -> None:
        for k in list(self._pending):
            self.cancel(k, _log=False)

    async def _fire_later(self, key: DebounceKey, fn: TaskFn, delay_ms: float) -> None:
        await asyncio.sleep(delay_ms / 1000.0)
        # Superseded while sleeping
        current = self._pending.get(key)
        if current is None or current.task is not asyncio.current_task():
            return
        self._pending.pop(key, None)
        if self._should_skip is not None and self._should_skip(key):
            core_metrics.counter("debounce_skipped_total", 1)
            log_debug(logger, "debounce", "debounce.skipped_in_flight", node_id=key[0], field=key[1])
            return
        await self._run(key, fn)

    async def _run(self, key: DebounceKey, fn: TaskFn) -> None:
        core_metrics.counter("debounce_fired_total", 1)
        try:
            await fn()
        except Exception as exc:
            # Background task: nobody awaits it, so report here.
            record_error(ErrorCode.internal, where="debounce.run", message=str(exc),
                         logger=logger, node_id=key[0], field=key[1],
                         error_type=exc.__class__.__name__)


__all__ = ["DebouncedScheduler", "DebounceKey"]
