"""
Manifest catalog: which fields each node type publishes and which node
types / fields it listens to.

Everything here is static data plus pure lookups. Unknown node types never
raise; they read as "publishes nothing, subscribes to nothing" so a node
without a manifest simply does not propagate.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from core_logging import get_logger, log_debug

logger = get_logger("core_sync.manifest")


@dataclass(frozen=True)
class DataField:
    id: str
    name: str
    description: str
    path: str
    critical: bool = False

    @property
    def root(self) -> str:
        """Top-level data key this field lives under (``teamAllocations`` for
        ``teamAllocations[].requestedHours``)."""
        return self.path.split(".", 1)[0].split("[", 1)[0]


@dataclass(frozen=True)
class Subscriptions:
    node_types: Tuple[str, ...] = ()
    fields: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class Manifest:
    node_type: str
    publishes: Tuple[DataField, ...]
    subscribes: Subscriptions

    def field(self, field_id: str) -> Optional[DataField]:
        for f in self.publishes:
            if f.id == field_id:
                return f
        return None


# ── field builders ──────────────────────────────────────────────────────────
def create_field(id: str, name: str, description: str, path: str | None = None, critical: bool = False) -> DataField:
    return DataField(id=id, name=name, description=description, path=path or id, critical=critical)

def create_nested_field(parent_path: str, id: str, name: str, description: str, critical: bool = False) -> DataField:
    full = f"{parent_path}.{id}"
    return create_field(full, name, description, full, critical)

def create_array_item_field(array_path: str, id: str, name: str, description: str, critical: bool = False) -> DataField:
    full = f"{array_path}[].{id}"
    return create_field(full, name, description, full, critical)


# ── registry ────────────────────────────────────────────────────────────────
_REGISTRY: Dict[str, Manifest] = {}

def register_manifest(manifest: Manifest) -> Manifest:
    _REGISTRY[manifest.node_type] = manifest
    return manifest

def _ensure_loaded() -> None:
    if not _REGISTRY:
        from core_sync import manifests  # noqa: F401  (registers on import)

def get_manifest(node_type: str) -> Optional[Manifest]:
    _ensure_loaded()
    return _REGISTRY.get(node_type)

def registered_types() -> List[str]:
    _ensure_loaded()
    return sorted(_REGISTRY)

def does_publish(node_type: str, field_id: str) -> bool:
    m = get_manifest(node_type)
    return bool(m and m.field(field_id))

def does_subscribe(subscriber_type: str, publisher_type: str) -> bool:
    m = get_manifest(subscriber_type)
    return bool(m and publisher_type in m.subscribes.node_types)

def get_subscribed_fields(subscriber_type: str, publisher_type: str) -> List[str]:
    m = get_manifest(subscriber_type)
    if not m:
        return []
    return list(m.subscribes.fields.get(publisher_type, ()))

def field_matches(field_id: str, changed_key: str) -> bool:
    """True when *changed_key* (a top-level data key) covers *field_id*.

    ``teamAllocations`` covers ``teamAllocations[].requestedHours`` and
    ``season`` covers ``season.startDate``.
    """
    if field_id == changed_key:
        return True
    return field_id.startswith(changed_key + ".") or field_id.startswith(changed_key + "[")

def is_critical(node_type: str, field_id: str) -> bool:
    """A changed key is critical if it, or any field nested under it, is critical."""
    m = get_manifest(node_type)
    if not m:
        return False
    return any(f.critical and field_matches(f.id, field_id) for f in m.publishes)

def get_field_details(node_type: str, field_id: str) -> Optional[DataField]:
    m = get_manifest(node_type)
    return m.field(field_id) if m else None

def get_subscribers_for_field(publisher_type: str, field_id: str) -> List[str]:
    _ensure_loaded()
    return sorted(
        t for t, m in _REGISTRY.items()
        if publisher_type in m.subscribes.node_types
        and any(field_matches(s, field_id) or field_matches(field_id, s)
                for s in m.subscribes.fields.get(publisher_type, ()))
    )

def interested_fields(subscriber_type: str, publisher_type: str, changed: Iterable[str]) -> List[str]:
    """Subset of *changed* keys that *subscriber_type* listens to on *publisher_type*."""
    wanted = get_subscribed_fields(subscriber_type, publisher_type)
    return [c for c in changed if any(field_matches(w, c) or field_matches(c, w) for w in wanted)]

def describe_update(publisher_type: str, publisher_id: str, fields: Iterable[str]) -> Dict[str, object]:
    """Debug payload for an update: critical fields and interested subscriber types."""
    fields = list(fields)
    subscribers: Dict[str, List[str]] = {}
    for f in fields:
        for t in get_subscribers_for_field(publisher_type, f):
            subscribers.setdefault(t, []).append(f)
    payload = {
        "publisher_type": publisher_type,
        "node_id": publisher_id,
        "affected_fields": fields,
        "critical_fields": [f for f in fields if is_critical(publisher_type, f)],
        "subscribers": subscribers,
    }
    log_debug(logger, "sync", "manifest.update_described", **payload)
    return payload

__all__ = [
    "DataField", "Subscriptions", "Manifest",
    "create_field", "create_nested_field", "create_array_item_field",
    "register_manifest", "get_manifest", "registered_types",
    "does_publish", "does_subscribe", "get_subscribed_fields", "is_critical",
    "get_field_details", "get_subscribers_for_field", "interested_fields",
    "field_matches", "describe_update",
]
