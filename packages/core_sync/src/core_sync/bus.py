"""
In-process event bus.

One ``EventBus`` per editing session. Publishing diffs the payload against
the publisher's last snapshot, classifies the change through the manifest
catalog and delivers synchronously, in registration order, to every
matching subscription. A failing callback is reported and skipped; it never
stops delivery to the remaining subscribers.
"""
from __future__ import annotations
import copy
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

from core_logging import get_logger, log_debug, record_error
from core_logging.error_codes import ErrorCode
from core_models.models import UpdateEvent
from core_models.ontology import UpdateType
from core_sync import manifest
import core_metrics

logger = get_logger("core_sync.bus")

Callback = Callable[[UpdateEvent], Any]
ConnectedIdsFn = Callable[[], Iterable[str]]

_SEQ = itertools.count(1)


@dataclass(eq=False)
class Subscription:
    """Unsubscribe token returned by every ``subscribe*`` call."""
    subscriber_id: str
    callback: Callback
    update_types: Optional[FrozenSet[UpdateType]] = None
    publisher_ids: Optional[set] = None
    connected_ids_fn: Optional[ConnectedIdsFn] = None
    subscriber_type: Optional[str] = None
    id: int = field(default_factory=lambda: next(_SEQ))
    active: bool = True
    _bus: Optional["EventBus"] = field(default=None, repr=False)

    def unsubscribe(self) -> bool:
        return self._bus.unsubscribe(self) if self._bus is not None else False

    def accepts_type(self, update_type: UpdateType) -> bool:
        if not self.update_types or UpdateType.ANY in self.update_types:
            return True
        return update_type in self.update_types


def diff_fields(previous: Optional[Mapping[str, Any]], data: Mapping[str, Any]) -> List[str]:
    """Keys of *data* whose value differs from *previous*; every key on first sight."""
    if previous is None:
        return list(data.keys())
    return [k for k, v in data.items() if k not in previous or previous[k] != v]


class EventBus:
    def __init__(self) -> None:
        self._subs: List[Subscription] = []
        self._snapshots: Dict[str, Dict[str, Any]] = {}
        self._node_types: Dict[str, str] = {}
        self._last_published_at: Dict[str, float] = {}

    # ── subscription management ────────────────────────────────────────────
    def _add(self, sub: Subscription) -> Subscription:
        sub._bus = self
        self._subs.append(sub)
        log_debug(logger, "sync", "bus.subscribed", node_id=sub.subscriber_id, subscription=sub.id)
        return sub

    @staticmethod
    def _types(update_types: Optional[Iterable[UpdateType | str]]) -> Optional[FrozenSet[UpdateType]]:
        if not update_types:
            return None
        return frozenset(UpdateType(t) for t in update_types)

    def subscribe(self, subscriber_id: str, publisher_id: str, callback: Callback,
                  update_types: Optional[Iterable[UpdateType | str]] = None) -> Subscription:
        return self.subscribe_to_many(subscriber_id, [publisher_id], callback, update_types)

    def subscribe_to_many(self, subscriber_id: str, publisher_ids: Iterable[str], callback: Callback,
                          update_types: Optional[Iterable[UpdateType | str]] = None) -> Subscription:
        return self._add(Subscription(
            subscriber_id=subscriber_id, callback=callback,
            update_types=self._types(update_types), publisher_ids=set(publisher_ids),
        ))

    def subscribe_to_connected(self, subscriber_id: str, connected_ids_fn: ConnectedIdsFn, callback: Callback,
                               update_types: Optional[Iterable[UpdateType | str]] = None) -> Subscription:
        """Deliver events from whatever ids *connected_ids_fn* returns at publish time."""
        return self._add(Subscription(
            subscriber_id=subscriber_id, callback=callback,
            update_types=self._types(update_types), connected_ids_fn=connected_ids_fn,
        ))

    def subscribe_to_type(self, subscriber_id: str, subscriber_type: str, callback: Callback,
                          update_types: Optional[Iterable[UpdateType | str]] = None) -> Subscription:
        """Deliver events from any publisher whose type and fields *subscriber_type*'s manifest lists."""
        return self._add(Subscription(
            subscriber_id=subscriber_id, callback=callback,
            update_types=self._types(update_types), subscriber_type=subscriber_type,
        ))

    def unsubscribe(self, sub: Subscription) -> bool:
        if not sub.active:
            return False
        sub.active = False
        self._subs = [s for s in self._subs if s is not sub]
        return True

    def unsubscribe_all(self, node_id: str) -> int:
        """
        Node teardown: drop every subscription the node owns, remove it from
        fixed publisher sets, and forget its snapshot.
        """
        removed = 0
        keep: List[Subscription] = []
        for s in self._subs:
            if s.subscriber_id == node_id:
                s.active = False
                removed += 1
                continue
            if s.publisher_ids is not None and node_id in s.publisher_ids:
                s.publisher_ids.discard(node_id)
                if not s.publisher_ids:
                    s.active = False
                    removed += 1
                    continue
            keep.append(s)
        self._subs = keep
        self.forget(node_id)
        self._node_types.pop(node_id, None)
        log_debug(logger, "sync", "bus.unsubscribed_all", node_id=node_id, removed=removed)
        return removed

    def subscriptions_for(self, subscriber_id: str) -> List[Subscription]:
        return [s for s in self._subs if s.subscriber_id == subscriber_id]

    # ── snapshots ───────────────────────────────────────────────────────────
    def node_type(self, node_id: str) -> Optional[str]:
        return self._node_types.get(node_id)

    def prime(self, publisher_id: str, data: Mapping[str, Any], node_type: Optional[str] = None) -> None:
        """Seed the snapshot without delivering (a node mounted with stored data)."""
        if node_type:
            self._node_types[publisher_id] = node_type
        self._snapshots[publisher_id] = copy.deepcopy(dict(data))

    def snapshot(self, publisher_id: str) -> Optional[Dict[str, Any]]:
        snap = self._snapshots.get(publisher_id)
        return copy.deepcopy(snap) if snap is not None else None

    def forget(self, publisher_id: str) -> None:
        self._snapshots.pop(publisher_id, None)
        self._last_published_at.pop(publisher_id, None)

    def last_published_at(self, publisher_id: str) -> Optional[float]:
        return self._last_published_at.get(publisher_id)

    # ── publish ─────────────────────────────────────────────────────────────
    def publish(self, publisher_id: str, data: Mapping[str, Any],
                metadata: Optional[Mapping[str, Any]] = None) -> Optional[UpdateEvent]:
        """
        Publish *data* (full or partial node data) for *publisher_id*.

        Returns the delivered event, or ``None`` when nothing changed.
        ``metadata`` may carry ``nodeType``, ``updateType`` and ``source``.
        """
        metadata = dict(metadata or {})
        node_type = metadata.get("nodeType") or self._node_types.get(publisher_id)
        if node_type:
            self._node_types[publisher_id] = node_type

        previous = self._snapshots.get(publisher_id)
        affected = diff_fields(previous, data)
        if not affected:
            core_metrics.counter("sync_publish_noop_total", 1)
            log_debug(logger, "sync", "bus.publish_noop", node_id=publisher_id)
            return None

        merged = dict(previous or {})
        merged.update(copy.deepcopy(dict(data)))
        self._snapshots[publisher_id] = merged

        if metadata.get("updateType"):
            update_type = UpdateType(metadata["updateType"])
        elif node_type and any(manifest.is_critical(node_type, f) for f in affected):
            update_type = UpdateType.CONTENT
        else:
            update_type = UpdateType.MINOR

        event = UpdateEvent(
            publisherId=publisher_id,
            nodeType=node_type,
            updateType=update_type,
            affectedFields=affected,
            data={k: merged[k] for k in affected},
            timestamp=time.time() * 1000.0,
            source=metadata.get("source"),
        )
        self._last_published_at[publisher_id] = event.timestamp
        core_metrics.counter("sync_publish_total", 1)
        if node_type:
            manifest.describe_update(node_type, publisher_id, affected)
        self._deliver(event)
        return event

    def _matches(self, sub: Subscription, event: UpdateEvent) -> bool:
        if not sub.accepts_type(event.updateType):
            return False
        pid = event.publisherId
        if sub.publisher_ids is not None:
            return pid in sub.publisher_ids
        if sub.connected_ids_fn is not None:
            return pid in set(sub.connected_ids_fn())
        if sub.subscriber_type is not None:
            if not event.nodeType or not manifest.does_subscribe(sub.subscriber_type, event.nodeType):
                return False
            return bool(manifest.interested_fields(sub.subscriber_type, event.nodeType, event.affectedFields))
        return False

    def _deliver(self, event: UpdateEvent) -> int:
        delivered = 0
        # Copy: callbacks may subscribe, unsubscribe or publish re-entrantly.
        for sub in list(self._subs):
            if not sub.active or sub.subscriber_id == event.publisherId:
                continue
            try:
                if not self._matches(sub, event):
                    continue
                sub.callback(event)
                delivered += 1
            except Exception as exc:
                core_metrics.counter("sync_callback_errors_total", 1)
                record_error(ErrorCode.callback_failed, where="bus.deliver", message=str(exc),
                             logger=logger, level="WARNING",
                             node_id=sub.subscriber_id, publisher_id=event.publisherId,
                             error_type=exc.__class__.__name__)
        log_debug(logger, "sync", "bus.delivered", node_id=event.publisherId,
                  update_type=event.updateType.value, fields=event.affectedFields, delivered=delivered)
        return delivered


__all__ = ["EventBus", "Subscription", "diff_fields"]
