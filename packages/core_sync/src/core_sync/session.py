from __future__ import annotations
from typing import Dict, Optional

from core_config import Settings, get_settings
from core_logging import bind_session_id, get_logger, log_stage
from core_utils.ids import generate_request_id
from core_sync.bus import EventBus
from core_sync.debounce import DebouncedScheduler, DebounceKey
from core_sync.guard import UpdateState

logger = get_logger("core_sync.session")


class SyncSession:
    """
    Everything one editing session shares: the event bus, the per-node
    update states and the debounced write scheduler. Nothing here is global,
    so two sessions in one process never see each other's events.
    """

    def __init__(self, session_id: Optional[str] = None, *, settings: Optional[Settings] = None) -> None:
        self.session_id = session_id or generate_request_id()
        self.settings = settings or get_settings()
        self.bus = EventBus()
        self.states: Dict[str, UpdateState] = {}
        self.scheduler = DebouncedScheduler(should_skip=self._in_flight)
        self.closed = False
        bind_session_id(self.session_id)
        log_stage(logger, "sync", "session.opened", session_id=self.session_id)

    def state_for(self, node_id: str) -> UpdateState:
        st = self.states.get(node_id)
        if st is None:
            st = self.states[node_id] = UpdateState(node_id=node_id)
        return st

    def drop_state(self, node_id: str) -> None:
        self.states.pop(node_id, None)

    def _in_flight(self, key: DebounceKey) -> bool:
        st = self.states.get(key[0])
        return bool(st and st.in_flight)

    async def close(self) -> None:
        """Flush every pending write, then drop all subscriptions and stop scheduling."""
        flushed = await self.scheduler.flush()
        self.closed = True
        self.scheduler.close()
        for node_id in list(self.states):
            self.bus.unsubscribe_all(node_id)
        self.states.clear()
        log_stage(logger, "sync", "session.closed", session_id=self.session_id, flushed=flushed)

__all__ = ["SyncSession"]
