"""
Per-node update guard.

Each mounted node owns one ``UpdateState``. It is an explicit value passed
through the pipeline (never a closure or module global) so tests can build,
inspect and dump it.

Suppressions are a normal outcome: they are counted and logged at debug
level, never raised.
"""
from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from core_config.constants import SYNC_RECENT_BUFFER_MS, SYNC_PROCESS_BUFFER_MS
from core_logging import get_logger, log_debug
from core_logging.error_codes import ErrorCode
import core_metrics

logger = get_logger("core_sync.guard")


def now_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class UpdateState:
    node_id: str
    in_flight: bool = False
    # Fields of the write in flight; empty while in flight means "whole node".
    in_flight_fields: FrozenSet[str] = frozenset()
    last_write_at: Dict[str, float] = field(default_factory=dict)
    in_flight_since: Optional[float] = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "in_flight": self.in_flight,
            "in_flight_fields": sorted(self.in_flight_fields),
            "in_flight_since": self.in_flight_since,
            "last_write_at": dict(self.last_write_at),
        }


def _recent(state: UpdateState, field_id: str, buffer_ms: float, now: float) -> bool:
    last = state.last_write_at.get(field_id)
    return last is not None and (now - last) < buffer_ms


def is_update_too_recent(
    state: UpdateState,
    field_id: str,
    buffer_ms: float = SYNC_RECENT_BUFFER_MS,
    now: Optional[float] = None,
) -> bool:
    """True if *field_id* was written inside the buffer window.

    A ``False`` answer records *now* as the field's write time, so the
    caller is expected to go ahead with the write.
    """
    now = now_ms() if now is None else now
    if _recent(state, field_id, buffer_ms, now):
        core_metrics.counter("sync_updates_suppressed_total", 1)
        log_debug(logger, "guard", "guard.write_too_recent",
                  node_id=state.node_id, field=field_id, buffer_ms=buffer_ms)
        return True
    state.last_write_at[field_id] = now
    return False


def should_process_update(
    state: UpdateState,
    publisher_id: str,
    fields: Iterable[str],
    buffer_ms: float = SYNC_PROCESS_BUFFER_MS,
    now: Optional[float] = None,
) -> bool:
    """
    Decide whether the node owning *state* should react to an event.

    Rejects, in order:
      * events the node published itself;
      * events arriving while a write is in flight for an overlapping field set;
      * events whose fields were *all* written by this node inside the buffer
        window (the echo of our own change coming back).

    The recency check here only reads ``last_write_at``; incoming events do
    not count as local writes.
    """
    fields = list(fields)
    reason = None
    if publisher_id == state.node_id:
        reason = "self"
    elif state.in_flight and (not state.in_flight_fields or not fields
                              or state.in_flight_fields.intersection(fields)):
        reason = "in_flight"
    else:
        now = now_ms() if now is None else now
        if fields and all(_recent(state, f, buffer_ms, now) for f in fields):
            reason = "recent"
    if reason is None:
        return True
    core_metrics.counter("sync_updates_suppressed_total", 1)
    log_debug(logger, "guard", "sync.circular_update_suppressed",
              node_id=state.node_id, publisher_id=publisher_id, fields=fields,
              reason=reason, code=ErrorCode.circular_update_suppressed.value)
    return False


def begin_update(state: UpdateState, fields: Iterable[str] = ()) -> None:
    """Mark a write as in flight. The flag is not reentrant."""
    state.in_flight = True
    state.in_flight_fields = frozenset(fields)
    state.in_flight_since = now_ms()


def end_update(state: UpdateState) -> None:
    state.in_flight = False
    state.in_flight_fields = frozenset()
    state.in_flight_since = None


__all__ = [
    "UpdateState", "now_ms", "is_update_too_recent", "should_process_update",
    "begin_update", "end_update",
]
