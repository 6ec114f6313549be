"""
Node controller: the per-node glue between local edits, the event bus, the
update guard and guarded write-back to storage.

Flow for a local edit::

    edit(field) -> guard (too recent?) -> publish -> debounce -> write()
                                                                  |
               in_flight while the store call runs, cleared after the grace window

Incoming events pass ``should_process_update`` and the manifest field
filter before the node's ``on_update`` handler sees them.
"""
from __future__ import annotations
import asyncio
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from core_config.constants import AGGREGATE_FIELDS
from core_logging import get_logger, log_debug, log_stage, log_warning, record_error
from core_logging.error_codes import ErrorCode
from core_models.errors import BackendUnavailable
from core_models.models import UpdateEvent
from core_models.ontology import UpdateType
from core_storage.base import GraphStore
from core_sync import manifest
from core_sync.bus import Subscription
from core_sync.guard import begin_update, end_update, is_update_too_recent, should_process_update
from core_sync.session import SyncSession
import core_metrics

logger = get_logger("core_sync.controller")

UpdateHandler = Callable[["NodeController", UpdateEvent, List[str]], Any]


class NodeController:
    def __init__(
        self,
        session: SyncSession,
        node_id: str,
        node_type: str,
        store: Optional[GraphStore] = None,
        *,
        data: Optional[Dict[str, Any]] = None,
        connected_ids_fn: Optional[Callable[[], Iterable[str]]] = None,
        on_update: Optional[UpdateHandler] = None,
    ) -> None:
        self.session = session
        self.node_id = node_id
        self.node_type = node_type
        self.store = store
        self.data: Dict[str, Any] = dict(data or {})
        self.state = session.state_for(node_id)
        self.connected: Set[str] = set()
        self._connected_ids_fn = connected_ids_fn or (lambda: self.connected)
        self._on_update = on_update
        self._subscription: Optional[Subscription] = None
        self._dirty: Set[str] = set()

    @property
    def bus(self):
        return self.session.bus

    @property
    def dirty_fields(self) -> List[str]:
        return sorted(self._dirty)

    # ── lifecycle ───────────────────────────────────────────────────────────
    def mount(self) -> Subscription:
        """Subscribe to connected nodes and seed the bus snapshot with current data."""
        if self.store is not None and not self.data:
            node = self.store.get_node(self.node_id)
            if node is not None:
                self.data = dict(node.data)
        self.refresh_connections()
        self.bus.prime(self.node_id, self.data, self.node_type)
        self._subscription = self.bus.subscribe_to_connected(self.node_id, self._connected_ids_fn, self._handle_event)
        log_stage(logger, "sync", "node.mounted", node_id=self.node_id, node_type=self.node_type)
        return self._subscription

    def refresh_connections(self) -> Set[str]:
        """Reload connected node ids from the edge store (any edge type, both directions)."""
        if self.store is None:
            return self.connected
        ids: Set[str] = set()
        for e in self.store.get_edges(self.node_id):
            ids.add(e.to_id if e.from_id == self.node_id else e.from_id)
        ids.discard(self.node_id)
        self.connected = ids
        return ids

    async def unmount(self, *, flush: bool = True) -> None:
        """Flush (or discard) pending writes, then drop every subscription of this node."""
        if flush:
            await self.session.scheduler.flush(self.node_id)
        else:
            self.session.scheduler.cancel_node(self.node_id)
        self.bus.unsubscribe_all(self.node_id)
        self.session.drop_state(self.node_id)
        self._subscription = None
        log_stage(logger, "sync", "node.unmounted", node_id=self.node_id, flushed=flush)

    # ── incoming ────────────────────────────────────────────────────────────
    def _handle_event(self, event: UpdateEvent) -> None:
        if not should_process_update(
            self.state, event.publisherId, event.affectedFields,
            buffer_ms=self.session.settings.sync_process_buffer_ms,
        ):
            return
        if event.nodeType and manifest.get_manifest(self.node_type) is not None:
            fields = manifest.interested_fields(self.node_type, event.nodeType, event.affectedFields)
            if not fields and event.updateType != UpdateType.DELETE:
                return
        else:
            fields = list(event.affectedFields)
        if self._on_update is not None:
            self._on_update(self, event, fields)

    # ── outgoing ────────────────────────────────────────────────────────────
    def edit(self, field: str, value: Any, *, debounce_ms: Optional[float] = None) -> bool:
        """
        Apply a local change, publish it and schedule the write-back.

        Returns ``False`` when the guard dropped the change as a likely
        circular update.
        """
        return self.edit_many({field: value}, debounce_ms=debounce_ms)

    def edit_many(self, changes: Dict[str, Any], *, debounce_ms: Optional[float] = None) -> bool:
        cfg = self.session.settings
        accepted = {
            f: v for f, v in changes.items()
            if not is_update_too_recent(self.state, f, cfg.sync_recent_buffer_ms)
        }
        if not accepted:
            return False
        self.data.update(accepted)
        self._dirty.update(accepted)
        self.bus.publish(self.node_id, accepted, {"nodeType": self.node_type, "source": "local"})
        for f in accepted:
            delay = debounce_ms
            if delay is None:
                delay = cfg.sync_aggregate_debounce_ms if f in AGGREGATE_FIELDS else cfg.sync_debounce_ms
            self.session.scheduler.schedule((self.node_id, f), self.write, delay)
        return True

    async def write(self, fields: Optional[Iterable[str]] = None) -> bool:
        """
        Guarded write-back of dirty fields. Skipped while another write of this
        node is in flight; skipped fields stay dirty and go out with the next
        write. Storage failures are reported and not retried.
        """
        if self.state.in_flight:
            log_debug(logger, "sync", "write.skipped_in_flight", node_id=self.node_id)
            return False
        wanted = set(fields) if fields is not None else set(self._dirty)
        wanted |= self._dirty
        if not wanted:
            return True
        if self.store is None:
            log_debug(logger, "sync", "write.no_store", node_id=self.node_id, fields=sorted(wanted))
            return False

        partial = {f: self.data.get(f) for f in sorted(wanted)}
        begin_update(self.state, wanted)
        try:
            node = await asyncio.to_thread(self.store.update_node, self.node_id, partial)
        except BackendUnavailable as exc:
            end_update(self.state)
            core_metrics.counter("storage_write_failures_total", 1)
            record_error(ErrorCode.storage_unavailable, where="controller.write", message=str(exc),
                         logger=logger, node_id=self.node_id, fields=sorted(wanted))
            return False
        except Exception as exc:
            # Driver errors outside the taxonomy still clear the in-flight flag.
            end_update(self.state)
            core_metrics.counter("storage_write_failures_total", 1)
            record_error(ErrorCode.internal, where="controller.write", message=str(exc),
                         logger=logger, node_id=self.node_id, fields=sorted(wanted),
                         error_type=exc.__class__.__name__)
            return False
        if node is None:
            end_update(self.state)
            log_warning(logger, "sync", "write.node_missing", node_id=self.node_id,
                        code=ErrorCode.not_found.value)
            return False
        # A field edited again while the write ran stays dirty.
        self._dirty -= {f for f in wanted if self.data.get(f) == partial[f]}
        grace = self.session.settings.sync_update_grace_ms / 1000.0
        asyncio.get_running_loop().call_later(grace, self._finish_write)
        log_stage(logger, "sync", "write.done", node_id=self.node_id, fields=sorted(wanted))
        return True

    def _finish_write(self) -> None:
        end_update(self.state)
        # Edits that arrived during the write go out with the next debounce cycle.
        if self._dirty and self._subscription is not None and not self.session.closed:
            self.session.scheduler.schedule((self.node_id, "*"), self.write, self.session.settings.sync_debounce_ms)


__all__ = ["NodeController", "UpdateHandler"]
