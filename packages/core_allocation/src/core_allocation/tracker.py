from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from core_logging import get_logger, log_stage
from core_models.models import AllocationResponse
from core_allocation.calendar import calendar_duration, default_timeframe, periods_overlap
from core_allocation.capacity import coerce_number, days_per_week, member_value
from core_allocation.cost import node_member_capacity

logger = get_logger("core_allocation.tracker")


@dataclass
class _Booking:
    hours: float
    start_date: str
    end_date: str


class TeamResourceTracker:
    """
    Hours booked per member and work node, with the time window of each
    booking. Requests are checked against the member's capacity for the
    requested window minus what overlapping bookings on other nodes already
    hold; a request that does not fit is reported and not booked.
    """

    def __init__(self, members: Iterable[Any] = (), team_id: Optional[str] = None) -> None:
        self.team_id = team_id
        self.members: Dict[str, Any] = {}
        self._bookings: Dict[str, Dict[str, _Booking]] = {}
        self.set_members(members)

    def set_members(self, members: Iterable[Any]) -> None:
        """Replace the roster; bookings of members no longer present are dropped."""
        self.members = {str(member_value(m, "memberId")): m for m in members or [] if member_value(m, "memberId")}
        for member_id in list(self._bookings):
            if member_id not in self.members:
                del self._bookings[member_id]

    def capacity_for(self, member_id: str, start_date: Any, end_date: Any) -> float:
        member = self.members.get(member_id)
        if member is None:
            return 0.0
        days = calendar_duration(start_date, end_date)
        working = max(1, round(days * days_per_week(member) / 7.0)) if days else 0
        return node_member_capacity(member, working)

    def bookings(self, member_id: str) -> Dict[str, float]:
        return {node: b.hours for node, b in self._bookings.get(member_id, {}).items()}

    def allocated_hours(self, member_id: str) -> float:
        return sum(b.hours for b in self._bookings.get(member_id, {}).values())

    def request_allocation(
        self,
        member_id: str,
        node_id: str,
        hours: Any,
        start_date: Any = None,
        end_date: Any = None,
    ) -> AllocationResponse:
        requested = max(0.0, coerce_number(hours))
        if not start_date or not end_date:
            start_date, end_date = default_timeframe()
        if member_id not in self.members:
            log_stage(logger, "allocation", "tracker.unknown_member", member_id=member_id, node_id=node_id)
            return AllocationResponse(success=False, memberId=member_id, nodeId=node_id,
                                      requestedHours=requested, reason="unknown_member")

        conflicts: List[str] = []
        elsewhere = 0.0
        for other_node, b in self._bookings.get(member_id, {}).items():
            if other_node == node_id or b.hours <= 0:
                continue
            if periods_overlap(b.start_date, b.end_date, start_date, end_date):
                conflicts.append(other_node)
                elsewhere += b.hours

        capacity = self.capacity_for(member_id, start_date, end_date)
        available = max(0.0, capacity - elsewhere)
        over_by = max(0.0, requested + elsewhere - capacity)
        ok = over_by == 0.0
        if ok:
            self._bookings.setdefault(member_id, {})[node_id] = _Booking(requested, str(start_date), str(end_date))
        log_stage(logger, "allocation", "tracker.requested", member_id=member_id, node_id=node_id,
                  requested=requested, capacity=capacity, elsewhere=elsewhere, success=ok)
        return AllocationResponse(
            success=ok,
            memberId=member_id,
            nodeId=node_id,
            requestedHours=requested,
            capacityHours=capacity,
            allocatedHoursElsewhere=elsewhere,
            availableHours=max(0.0, available - requested) if ok else available,
            overAllocatedBy=over_by,
            conflictsWith=sorted(conflicts),
            reason=None if ok else "over_allocated",
        )

    def release_allocation(self, member_id: str, node_id: str) -> bool:
        booked = self._bookings.get(member_id, {})
        if node_id not in booked:
            return False
        del booked[node_id]
        log_stage(logger, "allocation", "tracker.released", member_id=member_id, node_id=node_id)
        return True

    def release_node(self, node_id: str) -> int:
        """Release every member's booking on *node_id*."""
        return sum(1 for member_id in list(self._bookings) if self.release_allocation(member_id, node_id))


__all__ = ["TeamResourceTracker"]
