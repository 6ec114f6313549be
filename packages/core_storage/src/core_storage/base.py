from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional, Protocol, runtime_checkable

from core_models.models import Node, Edge
from core_models.ontology import EdgeType

Direction = Literal["out", "in", "any"]


@runtime_checkable
class GraphStore(Protocol):
    """Node/edge persistence consumed by the sync, hierarchy and API layers.

    Contract shared by every adapter:
      * reads return ``None`` / ``[]`` for missing data, never raise NotFound;
      * ``update_node`` is last-write-wins per field (shallow merge of ``data``);
      * structured fields leave the store already decoded;
      * write failures raise ``BackendUnavailable``.
    """

    def ready(self) -> bool: ...

    def get_node(self, node_id: str) -> Optional[Node]: ...

    def create_node(self, node: Node) -> Node: ...

    def update_node(self, node_id: str, partial: Dict[str, Any]) -> Optional[Node]: ...

    def delete_node(self, node_id: str) -> bool: ...

    def get_edges(
        self,
        node_id: str,
        edge_type: Optional[EdgeType] = None,
        direction: Direction = "any",
    ) -> List[Edge]: ...

    def get_edge(self, edge_id: str) -> Optional[Edge]: ...

    def create_edge(self, edge: Edge) -> Edge: ...

    def update_edge(self, edge_id: str, properties: Dict[str, Any]) -> Optional[Edge]: ...

    def delete_edge(self, edge_id: str) -> bool: ...


def edge_matches(edge: Edge, node_id: str, edge_type: Optional[str], direction: Direction) -> bool:
    if edge_type is not None and edge.type != edge_type:
        return False
    if direction == "out":
        return edge.from_id == node_id
    if direction == "in":
        return edge.to_id == node_id
    return edge.from_id == node_id or edge.to_id == node_id

__all__ = ["GraphStore", "Direction", "edge_matches"]
