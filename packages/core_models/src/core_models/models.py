from pydantic import BaseModel, Field, field_validator, ConfigDict, model_validator, AliasChoices
from typing import Any, Dict, List, Optional
from core_models.ontology import NodeType, EdgeType, UpdateType, canonical_edge_type, canonical_node_type


class Node(BaseModel):
    """A graph node as the engine sees it: identity, type and a free-form data map."""
    id: str
    type: NodeType
    data: Dict[str, Any] = Field(default_factory=dict)
    model_config = ConfigDict(extra="ignore")

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, v):
        return {} if v is None else v

    @field_validator("type", mode="before")
    @classmethod
    def _canonical_type(cls, v):
        return canonical_node_type(v)


class ParentChildProperties(BaseModel):
    rollupContribution: bool = True
    weight: float = 1.0
    label: str = "Parent-Child"
    model_config = ConfigDict(extra="allow")


class Edge(BaseModel):
    """
    Directed typed edge. Storage adapters and the canvas disagree on endpoint
    naming (``from``/``to`` vs ``source``/``target``); both are accepted and
    ``from``/``to`` is what gets serialized.
    """
    id: str
    from_id: str = Field(alias="from", validation_alias=AliasChoices("from", "source", "from_id", "_from"))
    to_id: str = Field(alias="to", validation_alias=AliasChoices("to", "target", "to_id", "_to"))
    type: EdgeType
    properties: Dict[str, Any] = Field(default_factory=dict)
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("type", mode="before")
    @classmethod
    def _canonical_type(cls, v):
        return canonical_edge_type(v)

    @field_validator("from_id", "to_id", mode="before")
    @classmethod
    def _strip_collection(cls, v):
        # ArangoDB _from/_to carry a "<collection>/" prefix
        if isinstance(v, str) and "/" in v:
            return v.split("/", 1)[1]
        return v

    @field_validator("properties", mode="before")
    @classmethod
    def _coerce_props(cls, v):
        return {} if v is None else v

    def parent_child(self) -> ParentChildProperties:
        return ParentChildProperties.model_validate(self.properties or {})


class HierarchyRelationship(BaseModel):
    parentId: Optional[str] = None
    childIds: List[str] = Field(default_factory=list)
    isRollup: bool = False

    @model_validator(mode="after")
    def _rollup_follows_children(self):
        object.__setattr__(self, "isRollup", len(self.childIds) > 0)
        return self


class MemberAllocation(BaseModel):
    memberId: str
    hours: float = 0.0
    hoursPerDay: Optional[float] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    cost: Optional[float] = None
    name: Optional[str] = None
    model_config = ConfigDict(extra="ignore")


class TeamAllocation(BaseModel):
    teamId: str
    requestedHours: float = 0.0
    allocatedMembers: List[MemberAllocation] = Field(default_factory=list)
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    model_config = ConfigDict(extra="ignore")

    @field_validator("allocatedMembers", mode="before")
    @classmethod
    def _coerce_members(cls, v):
        return [] if v is None else v


class RosterMember(BaseModel):
    memberId: str
    allocation: float = 100.0
    role: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    model_config = ConfigDict(extra="ignore")


class MemberCapacity(BaseModel):
    memberId: Optional[str] = None
    name: Optional[str] = None
    hoursPerDay: float = 8.0
    daysPerWeek: float = 5.0
    dailyRate: float = 0.0
    weeklyCapacity: Optional[float] = None
    model_config = ConfigDict(extra="ignore")


class AvailableMember(BaseModel):
    """Team member as resolved from a team roster, ready for cost lookups."""
    memberId: str
    name: str = ""
    hoursPerDay: float = 8.0
    daysPerWeek: float = 5.0
    dailyRate: float = 0.0
    weeklyCapacity: Optional[float] = None
    allocation: float = 100.0
    teamId: Optional[str] = None
    model_config = ConfigDict(extra="ignore")


class MemberCostLine(BaseModel):
    memberId: str
    name: str = ""
    teamId: Optional[str] = None
    hours: float = 0.0
    hoursPerDay: float = 8.0
    totalDays: float = 0.0
    cost: float = 0.0
    dailyRate: float = 0.0
    allocationPercentage: float = 0.0


class CostSummary(BaseModel):
    totalCost: float = 0.0
    totalHours: float = 0.0
    totalDays: float = 0.0
    dailyCost: float = 0.0
    allocations: List[MemberCostLine] = Field(default_factory=list)


class MemberAllocationDetails(BaseModel):
    startDate: str
    endDate: str
    calendarDays: int
    workingDays: int
    hours: float
    dailyHours: float
    percentage: float
    cost: float


class OverAllocation(BaseModel):
    isOverAllocated: bool = False
    overAllocatedBy: float = 0.0
    effectiveCapacity: float = 0.0
    allocatedHoursElsewhere: float = 0.0
    remainingCapacity: float = 0.0


class AllocationResponse(BaseModel):
    """Outcome of a tracked allocation request for one member on one work node."""
    success: bool
    memberId: str
    nodeId: str
    requestedHours: float = 0.0
    capacityHours: float = 0.0
    allocatedHoursElsewhere: float = 0.0
    availableHours: float = 0.0
    overAllocatedBy: float = 0.0
    conflictsWith: List[str] = Field(default_factory=list)
    reason: Optional[str] = None


class UpdateEvent(BaseModel):
    publisherId: str
    nodeType: Optional[NodeType] = None
    updateType: UpdateType = UpdateType.MINOR
    affectedFields: List[str] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: float
    source: Optional[str] = None
    model_config = ConfigDict(frozen=True)


__all__ = [
    "Node", "Edge", "ParentChildProperties", "HierarchyRelationship",
    "MemberAllocation", "TeamAllocation", "RosterMember", "MemberCapacity",
    "AvailableMember", "MemberCostLine", "CostSummary", "MemberAllocationDetails",
    "OverAllocation", "AllocationResponse",
    "UpdateEvent",
]
