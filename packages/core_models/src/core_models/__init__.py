"""
core_models: canonical exports

Re-exports the ontology, the pydantic models and the error taxonomy so every
package shares a single vocabulary.
"""

from .ontology import (
    NodeType, EdgeType, UpdateType,
    NODE_TYPES, EDGE_TYPES, HIERARCHY_EDGE_TYPES, ROLLUP_NODE_TYPES,
    canonical_node_type, canonical_edge_type, parse_date,
)
from .models import (
    Node, Edge, ParentChildProperties, HierarchyRelationship,
    MemberAllocation, TeamAllocation, RosterMember, MemberCapacity,
    AvailableMember, MemberCostLine, CostSummary, MemberAllocationDetails,
    OverAllocation, AllocationResponse, UpdateEvent,
)
from .errors import (
    PlannerError, NotFoundError, AllocationValidationError,
    HierarchyError, ConflictError, BackendUnavailable,
)

__all__ = [
    "NodeType","EdgeType","UpdateType",
    "NODE_TYPES","EDGE_TYPES","HIERARCHY_EDGE_TYPES","ROLLUP_NODE_TYPES",
    "canonical_node_type","canonical_edge_type","parse_date",
    "Node","Edge","ParentChildProperties","HierarchyRelationship",
    "MemberAllocation","TeamAllocation","RosterMember","MemberCapacity",
    "AvailableMember","MemberCostLine","CostSummary","MemberAllocationDetails",
    "OverAllocation","AllocationResponse","UpdateEvent",
    "PlannerError","NotFoundError","AllocationValidationError",
    "HierarchyError","ConflictError","BackendUnavailable",
]
