from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from pydantic import BaseModel, Field

from core_allocation import cost_summary, member_allocation_details, repair_team_allocations
from core_config import get_settings
from core_hierarchy import HierarchyService
from core_logging import get_logger, log_stage
from core_models.errors import ConflictError, NotFoundError
from core_models.models import AvailableMember, CostSummary, MemberAllocationDetails, MemberCapacity
from core_storage import get_store
from core_storage.base import GraphStore
from core_utils.fastapi_bootstrap import setup_service
from core_utils.health import attach_health_routes
from core_utils import jsonx
from planner_api.errors import attach_standard_error_handlers

settings = get_settings()
logger = get_logger("planner_api")

app = FastAPI(title="Lattice Planner API", version="0.1.0")
setup_service(app, "planner_api")
attach_standard_error_handlers(app, service="planner_api")


@lru_cache()
def store() -> GraphStore:
    return get_store()


def hierarchy() -> HierarchyService:
    return HierarchyService(store())


def _require_node(node_id: str):
    node = store().get_node(node_id)
    if node is None:
        raise NotFoundError(f"node {node_id} not found", details={"node_id": node_id})
    return node


# ── health ──────────────────────────────────────────────────────────────
def _readiness() -> dict:
    if settings.offline_mode:
        return {"ready": True, "mode": "offline"}
    return {"ready": bool(store().ready()), "mode": "arangodb"}


attach_health_routes(app, checks={"liveness": lambda: True, "readiness": _readiness})


# ── request bodies ─────────────────────────────────────────────────────
class AttachChildRequest(BaseModel):
    childId: str
    weight: float = 1.0
    rollupContribution: bool = True


class CostSummaryRequest(BaseModel):
    teamAllocations: Any = Field(default_factory=list)
    availableMembers: Dict[str, AvailableMember] | List[AvailableMember] = Field(default_factory=dict)


class MemberDetailsRequest(BaseModel):
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    duration: Optional[float] = None
    capacity: MemberCapacity = Field(default_factory=MemberCapacity)
    hours: float = 0.0


# ── hierarchy ──────────────────────────────────────────────────────────
@app.get("/api/nodes/{node_id}/children")
def list_children(node_id: str):
    _require_node(node_id)
    svc = hierarchy()
    children = svc.get_children(node_id)
    return {
        "nodeId": node_id,
        "children": [c.model_dump() for c in children],
        "relationship": svc.get_relationship(node_id).model_dump(),
    }


@app.post("/api/nodes/{node_id}/children", status_code=201)
def attach_child(node_id: str, body: AttachChildRequest):
    _require_node(node_id)
    _require_node(body.childId)
    svc = hierarchy()
    if svc.get_parent(body.childId) == node_id:
        raise ConflictError("relationship already exists",
                            details={"parent_id": node_id, "child_id": body.childId})
    rel = svc.set_parent(body.childId, node_id, weight=body.weight,
                         rollup_contribution=body.rollupContribution)
    log_stage(logger, "hierarchy", "api.child_attached", node_id=node_id, child_id=body.childId)
    return {"nodeId": node_id, "relationship": rel.model_dump()}


@app.delete("/api/nodes/{node_id}/children/{child_id}")
def detach_child(node_id: str, child_id: str):
    _require_node(node_id)
    svc = hierarchy()
    if svc.get_parent(child_id) != node_id:
        raise NotFoundError("relationship not found", details={"parent_id": node_id, "child_id": child_id})
    svc.remove_parent(child_id)
    return {"nodeId": node_id, "relationship": svc.get_relationship(node_id).model_dump()}


@app.get("/api/nodes/{node_id}/parent")
def get_parent(node_id: str):
    _require_node(node_id)
    return {"nodeId": node_id, "parentId": hierarchy().get_parent(node_id)}


@app.post("/api/nodes/{node_id}/recalculate")
def recalculate(node_id: str):
    _require_node(node_id)
    result = hierarchy().recalculate_rollup(node_id)
    if result is None:
        raise NotFoundError(f"node {node_id} not found", details={"node_id": node_id})
    return jsonx.sanitize({
        "nodeId": node_id,
        "rollupEstimate": result.rollup_estimate,
        "totalCost": result.total_cost,
        "childIds": result.child_ids,
        "skippedEdges": result.skipped_edges,
        "propagatedTo": result.propagated_to,
        "written": result.written,
    })


# ── allocations ────────────────────────────────────────────────────────
@app.post("/api/allocations/cost-summary", response_model=CostSummary)
def allocation_cost_summary(body: CostSummaryRequest) -> CostSummary:
    members = body.availableMembers
    if isinstance(members, list):
        members = {m.memberId: m for m in members}
    return cost_summary(repair_team_allocations(body.teamAllocations), members)


@app.post("/api/allocations/member-details", response_model=MemberAllocationDetails)
def allocation_member_details(body: MemberDetailsRequest) -> MemberAllocationDetails:
    return member_allocation_details(body.startDate, body.endDate, body.duration, body.capacity, body.hours)
