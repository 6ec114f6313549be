"""
Parent/child relationships and rollup propagation.

``PARENT_CHILD`` edges (parent -> child) are the source of truth. The
``childIds``/``isRollup``/``parentId`` fields on nodes are a read model,
rewritten from the edges after every mutation.
"""
from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from core_logging import get_logger, log_stage, log_warning, log_debug, record_error
from core_logging.error_codes import ErrorCode
from core_models.errors import BackendUnavailable, HierarchyError, NotFoundError
from core_models.models import Edge, HierarchyRelationship, Node, ParentChildProperties
from core_storage.base import GraphStore
from core_utils.ids import edge_id
from core_hierarchy.rollup import (
    calculate_rollup_estimate, child_contribution, child_cost,
    contains_hierarchy_fields, contains_metric_fields, direct_estimate,
)
import core_metrics

logger = get_logger("core_hierarchy")

PARENT_CHILD = "PARENT_CHILD"


@dataclass
class RollupResult:
    node_id: str
    rollup_estimate: Optional[float]
    total_cost: Optional[float]
    child_ids: List[str]
    contributing: int = 0
    skipped_edges: List[str] = field(default_factory=list)
    written: bool = False
    error: Optional[str] = None
    propagated_to: List[str] = field(default_factory=list)


class HierarchyService:
    def __init__(self, store: GraphStore) -> None:
        self.store = store

    # ── reads ───────────────────────────────────────────────────────────────
    def _child_edges(self, parent_id: str) -> List[Edge]:
        return self.store.get_edges(parent_id, PARENT_CHILD, "out")

    def _parent_edge(self, child_id: str) -> Optional[Edge]:
        edges = self.store.get_edges(child_id, PARENT_CHILD, "in")
        if len(edges) > 1:
            log_warning(logger, "hierarchy", "hierarchy.multiple_parents", node_id=child_id,
                        edges=[e.id for e in edges], code=ErrorCode.inconsistent_reference.value)
        return edges[0] if edges else None

    def child_ids(self, parent_id: str) -> List[str]:
        return [e.to_id for e in self._child_edges(parent_id)]

    def get_parent(self, child_id: str) -> Optional[str]:
        e = self._parent_edge(child_id)
        return e.from_id if e else None

    def get_children(self, parent_id: str) -> List[Node]:
        """Child nodes; edges pointing at missing nodes are reported and skipped."""
        out: List[Node] = []
        for e in self._child_edges(parent_id):
            child = self.store.get_node(e.to_id)
            if child is None:
                self._report_broken_edge(e)
                continue
            out.append(child)
        return out

    def get_relationship(self, node_id: str) -> HierarchyRelationship:
        return HierarchyRelationship(parentId=self.get_parent(node_id), childIds=self.child_ids(node_id))

    def check_consistency(self, node_id: str) -> bool:
        """True when the node's ``childIds`` read model matches its PARENT_CHILD edges."""
        node = self.store.get_node(node_id)
        if node is None:
            return False
        stored = list(node.data.get("childIds") or [])
        actual = self.child_ids(node_id)
        ok = sorted(stored) == sorted(actual) and bool(node.data.get("isRollup")) == bool(actual)
        if not ok:
            log_warning(logger, "hierarchy", "hierarchy.read_model_drift", node_id=node_id,
                        stored=stored, actual=actual)
        return ok

    def _report_broken_edge(self, e: Edge) -> None:
        core_metrics.counter("hierarchy_inconsistent_reference_total", 1)
        log_warning(logger, "hierarchy", "hierarchy.inconsistent_reference",
                    edge_id=e.id, target_id=e.to_id, node_id=e.from_id,
                    code=ErrorCode.inconsistent_reference.value)

    def _require(self, node_id: str) -> Node:
        node = self.store.get_node(node_id)
        if node is None:
            raise NotFoundError(f"node {node_id} not found", details={"node_id": node_id})
        return node

    def _sync_read_model(self, parent_id: str) -> List[str]:
        ids = self.child_ids(parent_id)
        self.store.update_node(parent_id, {"childIds": ids, "isRollup": bool(ids)})
        return ids

    def _is_ancestor(self, candidate: str, node_id: str) -> bool:
        seen: Set[str] = set()
        cur = self.get_parent(node_id)
        while cur is not None and cur not in seen:
            if cur == candidate:
                return True
            seen.add(cur)
            cur = self.get_parent(cur)
        return False

    # ── mutations ───────────────────────────────────────────────────────────
    def set_parent(
        self,
        child_id: str,
        parent_id: str,
        weight: float = 1.0,
        rollup_contribution: bool = True,
    ) -> HierarchyRelationship:
        """
        Attach *child_id* under *parent_id*, detaching it from any previous
        parent first. Re-attaching to the current parent only updates the
        edge properties.
        """
        if child_id == parent_id:
            raise HierarchyError("a node cannot be its own parent", details={"node_id": child_id})
        self._require(child_id)
        self._require(parent_id)
        if self._is_ancestor(child_id, parent_id):
            raise HierarchyError("parent is a descendant of the child",
                                 details={"child_id": child_id, "parent_id": parent_id})

        props = ParentChildProperties(rollupContribution=rollup_contribution, weight=weight).model_dump()
        current = self._parent_edge(child_id)
        if current is not None and current.from_id == parent_id:
            self.store.update_edge(current.id, props)
            self._sync_read_model(parent_id)
            log_stage(logger, "hierarchy", "hierarchy.edge_updated", node_id=child_id, parent_id=parent_id)
            self.recalculate_rollup(parent_id)
            return self.get_relationship(parent_id)

        if current is not None:
            self._detach(current)

        self.store.create_edge(Edge(
            id=edge_id(parent_id, child_id, PARENT_CHILD),
            from_id=parent_id, to_id=child_id, type=PARENT_CHILD, properties=props,
        ))
        self._sync_read_model(parent_id)
        self.store.update_node(child_id, {"parentId": parent_id})
        log_stage(logger, "hierarchy", "hierarchy.parent_set", node_id=child_id, parent_id=parent_id,
                  previous_parent=(current.from_id if current else None))
        self.recalculate_rollup(parent_id)
        return self.get_relationship(parent_id)

    def _detach(self, e: Edge) -> None:
        old_parent = e.from_id
        self.store.delete_edge(e.id)
        self.store.update_node(e.to_id, {"parentId": None})
        parent_exists = self.store.get_node(old_parent) is not None
        remaining = self._sync_read_model(old_parent) if parent_exists else []
        log_stage(logger, "hierarchy", "hierarchy.detached", node_id=e.to_id, parent_id=old_parent,
                  remaining_children=len(remaining))
        # An emptied parent keeps its last rollupEstimate (stale, not reset);
        # its ancestors still lose the detached subtree.
        if parent_exists:
            self.recalculate_rollup(old_parent)

    def remove_parent(self, child_id: str) -> Optional[str]:
        """Detach *child_id* from its parent; returns the old parent id (``None`` if it had none)."""
        current = self._parent_edge(child_id)
        if current is None:
            log_debug(logger, "hierarchy", "hierarchy.remove_parent_noop", node_id=child_id)
            return None
        self._detach(current)
        return current.from_id

    # ── rollup ──────────────────────────────────────────────────────────────
    def recalculate_rollup(
        self,
        node_id: str,
        fields: Optional[List[str]] = None,
        *,
        propagate: bool = True,
        pending: Optional[Dict[str, Dict[str, Any]]] = None,
        _seen: Optional[Set[str]] = None,
    ) -> Optional[RollupResult]:
        """
        Recompute ``rollupEstimate``/``totalCost`` of *node_id* from its
        children and, when *propagate*, of every ancestor up to the root.

        *fields* are the changed fields that triggered the call; when given
        and none of them is a metric or hierarchy field nothing is done.
        *pending* maps child ids to values published but not yet written;
        they take precedence over what the store returns.
        Returns ``None`` when the node does not exist or nothing was due.
        """
        if fields is not None and not (contains_metric_fields(fields) or contains_hierarchy_fields(fields)):
            log_debug(logger, "hierarchy", "rollup.not_needed", node_id=node_id, fields=list(fields))
            return None
        seen = _seen if _seen is not None else set()
        if node_id in seen:
            log_warning(logger, "hierarchy", "rollup.cycle_detected", node_id=node_id)
            return None
        seen.add(node_id)

        t0 = time.perf_counter()
        node = self.store.get_node(node_id)
        if node is None:
            log_warning(logger, "hierarchy", "rollup.node_missing", node_id=node_id,
                        code=ErrorCode.not_found.value)
            return None

        edges = self._child_edges(node_id)
        ids = [e.to_id for e in edges]
        estimates: List[float] = []
        cost = 0.0
        skipped: List[str] = []
        for e in edges:
            if not e.parent_child().rollupContribution:
                continue
            child = self.store.get_node(e.to_id)
            if child is None:
                self._report_broken_edge(e)
                skipped.append(e.id)
                continue
            data = {**child.data, **(pending or {}).get(e.to_id, {})}
            estimates.append(child_contribution(data))
            cost += child_cost(data)

        result = RollupResult(node_id=node_id, rollup_estimate=None, total_cost=None,
                              child_ids=ids, contributing=len(estimates), skipped_edges=skipped)
        patch = {"childIds": ids, "isRollup": bool(ids)}
        if ids:
            result.rollup_estimate = calculate_rollup_estimate(direct_estimate(node.data), estimates)
            result.total_cost = cost
            patch.update(rollupEstimate=result.rollup_estimate, totalCost=cost)
        else:
            # No children: keep the previous (stale) values in place.
            result.rollup_estimate = node.data.get("rollupEstimate")
            result.total_cost = node.data.get("totalCost")

        try:
            self.store.update_node(node_id, patch)
            result.written = True
        except BackendUnavailable as exc:
            result.error = str(exc)
            record_error(ErrorCode.storage_unavailable, where="hierarchy.recalculate_rollup",
                         message=str(exc), logger=logger, node_id=node_id)
            return result
        finally:
            core_metrics.histogram_ms("hierarchy_rollup_latency_ms", (time.perf_counter() - t0) * 1000)

        log_stage(logger, "hierarchy", "rollup.done", node_id=node_id,
                  rollup_estimate=result.rollup_estimate, total_cost=result.total_cost,
                  children=len(ids), skipped=len(skipped))

        if propagate:
            parent_id = self.get_parent(node_id)
            if parent_id is not None:
                parent_result = self.recalculate_rollup(parent_id, _seen=seen)
                if parent_result is not None:
                    result.propagated_to = [parent_id] + parent_result.propagated_to
        return result

    def notify_parent_of_changes(self, child_id: str, changed_fields: List[str]) -> Optional[RollupResult]:
        """Recalculate the parent of *child_id* when a metric field changed."""
        if not contains_metric_fields(changed_fields):
            return None
        parent_id = self.get_parent(child_id)
        if parent_id is None:
            return None
        return self.recalculate_rollup(parent_id)


__all__ = ["HierarchyService", "RollupResult", "PARENT_CHILD"]
