from __future__ import annotations
import copy
import threading
from typing import Any, Dict, List, Optional

from core_logging import get_logger, log_stage
from core_models.errors import BackendUnavailable, ConflictError
from core_models.models import Node, Edge
from core_storage.base import Direction, edge_matches
from core_storage.codec import encode_fields, decode_fields

logger = get_logger("core_storage.memory")


class MemoryStore:
    """In-process graph store used in offline mode and by the unit tests.

    Node data is kept in its persisted (JSON-framed) form so reads go through
    the same codec as the ArangoDB adapter. ``fail_writes`` simulates an
    unreachable backend.
    """

    def __init__(self, *, fail_writes: bool = False) -> None:
        self._nodes: Dict[str, Dict[str, Any]] = {}
        self._edges: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self.fail_writes = fail_writes
        self.writes: List[Dict[str, Any]] = []

    def ready(self) -> bool:
        return True

    def _check_writable(self, op: str) -> None:
        if self.fail_writes:
            raise BackendUnavailable(f"memory store rejected {op}", details={"op": op})

    # ── nodes ──────────────────────────────────────────────────────────────
    def get_node(self, node_id: str) -> Optional[Node]:
        with self._lock:
            doc = self._nodes.get(node_id)
            if doc is None:
                return None
            return Node(id=doc["id"], type=doc["type"], data=decode_fields(copy.deepcopy(doc["data"])))

    def create_node(self, node: Node) -> Node:
        self._check_writable("create_node")
        with self._lock:
            if node.id in self._nodes:
                raise ConflictError(f"node {node.id} already exists", details={"node_id": node.id})
            self._nodes[node.id] = {"id": node.id, "type": node.type, "data": encode_fields(node.data)}
        return self.get_node(node.id)  # type: ignore[return-value]

    def update_node(self, node_id: str, partial: Dict[str, Any]) -> Optional[Node]:
        self._check_writable("update_node")
        with self._lock:
            doc = self._nodes.get(node_id)
            if doc is None:
                return None
            doc["data"].update(encode_fields(partial))
            self.writes.append({"node_id": node_id, "fields": sorted(partial)})
        log_stage(logger, "storage", "node.updated", node_id=node_id, fields=sorted(partial))
        return self.get_node(node_id)

    def delete_node(self, node_id: str) -> bool:
        self._check_writable("delete_node")
        with self._lock:
            if self._nodes.pop(node_id, None) is None:
                return False
            for eid in [k for k, e in self._edges.items() if node_id in (e["from"], e["to"])]:
                self._edges.pop(eid, None)
        return True

    # ── edges ──────────────────────────────────────────────────────────────
    def get_edges(self, node_id: str, edge_type: Optional[str] = None, direction: Direction = "any") -> List[Edge]:
        with self._lock:
            edges = [Edge.model_validate(copy.deepcopy(doc)) for doc in self._edges.values()]
        return [e for e in edges if edge_matches(e, node_id, edge_type, direction)]

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        with self._lock:
            doc = self._edges.get(edge_id)
            return Edge.model_validate(copy.deepcopy(doc)) if doc is not None else None

    def create_edge(self, edge: Edge) -> Edge:
        self._check_writable("create_edge")
        with self._lock:
            if edge.id in self._edges:
                raise ConflictError(f"edge {edge.id} already exists", details={"edge_id": edge.id})
            self._edges[edge.id] = edge.model_dump(by_alias=True)
        return edge

    def update_edge(self, edge_id: str, properties: Dict[str, Any]) -> Optional[Edge]:
        self._check_writable("update_edge")
        with self._lock:
            doc = self._edges.get(edge_id)
            if doc is None:
                return None
            doc["properties"] = {**(doc.get("properties") or {}), **(properties or {})}
        return self.get_edge(edge_id)

    def delete_edge(self, edge_id: str) -> bool:
        self._check_writable("delete_edge")
        with self._lock:
            return self._edges.pop(edge_id, None) is not None

    # ── test/offline helpers ─────────────────────────────────────────────
    def raw_node(self, node_id: str) -> Optional[Dict[str, Any]]:
        """The persisted document, structured fields still JSON text."""
        with self._lock:
            doc = self._nodes.get(node_id)
            return copy.deepcopy(doc) if doc is not None else None

    def put_raw_node(self, node_id: str, node_type: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._nodes[node_id] = {"id": node_id, "type": node_type, "data": copy.deepcopy(data)}

__all__ = ["MemoryStore"]
