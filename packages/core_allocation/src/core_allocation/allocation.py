from __future__ import annotations
import math
from datetime import date, timedelta
from typing import Any, Iterable, List, Optional

from core_config.constants import DEFAULT_DURATION_DAYS, END_DATE_STRETCH
from core_models.models import MemberAllocation, MemberAllocationDetails, RosterMember
from core_models.ontology import parse_date
from core_allocation.calendar import calendar_duration, periods_overlap, working_days
from core_allocation.capacity import (
    clamp_pct, coerce_number, days_per_week, hours_per_day, member_value,
)

WORK_NODE_TYPES = ("feature", "option", "provider")


def roster_members(roster: Iterable[Any]) -> List[RosterMember]:
    """Team roster entries as models; entries without a memberId are skipped."""
    out: List[RosterMember] = []
    for m in roster or []:
        member_id = member_value(m, "memberId")
        if not member_id:
            continue
        role = member_value(m, "role")
        out.append(RosterMember(
            memberId=str(member_id),
            allocation=clamp_pct(member_value(m, "allocation"), 100.0),
            role=role if isinstance(role, str) else None,
        ))
    return out


def member_allocations(roster: Iterable[Any], requested_hours: Any) -> List[MemberAllocation]:
    """Split *requested_hours* across a roster by each member's allocation percentage."""
    requested = max(0.0, coerce_number(requested_hours))
    return [
        MemberAllocation(memberId=m.memberId, hours=m.allocation / 100.0 * requested)
        for m in roster_members(roster)
    ]


def member_allocation_details(
    start_date: Any,
    end_date: Any,
    duration: Any,
    capacity: Any,
    hours: Any,
    *,
    today: Optional[date] = None,
) -> MemberAllocationDetails:
    """
    Dates, working days, daily load and cost of one member allocation.

    A missing start is today; a missing end is start plus the duration
    stretched to calendar days (duration defaults to 10). Percentage is of
    the member's daily hours, capped at 100. Cost is days-equivalent x dailyRate.
    """
    start = parse_date(start_date) or today or date.today()
    dur = coerce_number(duration, 0.0) or DEFAULT_DURATION_DAYS
    end = parse_date(end_date)
    if end is None or end < start:
        end = start + timedelta(days=math.ceil(dur * END_DATE_STRETCH))

    hpd = hours_per_day(capacity)
    hrs = max(0.0, coerce_number(hours))
    wd = working_days(start, end, days_per_week(capacity))
    daily = hrs / wd if wd > 0 else hrs
    pct = min(100.0, daily / hpd * 100.0) if hpd > 0 else 0.0
    rate = max(0.0, coerce_number(member_value(capacity, "dailyRate")))
    cost = (hrs / hpd) * rate if hpd > 0 else 0.0
    return MemberAllocationDetails(
        startDate=start.isoformat(),
        endDate=end.isoformat(),
        calendarDays=calendar_duration(start, end),
        workingDays=wd,
        hours=hrs,
        dailyHours=daily,
        percentage=pct,
        cost=cost,
    )


def _node_fields(node: Any):
    if isinstance(node, dict):
        return node.get("type"), node.get("data") or {}
    return getattr(node, "type", None), getattr(node, "data", None) or {}


def member_total_allocations(
    member_id: str,
    nodes: Iterable[Any],
    start_date: Any = None,
    end_date: Any = None,
    *,
    exclude_node_id: Optional[str] = None,
) -> float:
    """
    Hours committed to *member_id* across work nodes (feature, option,
    provider). With a window, only allocations overlapping it count; an
    allocation without dates of its own takes its team's, then its node's.
    """
    windowed = parse_date(start_date) is not None and parse_date(end_date) is not None
    total = 0.0
    for node in nodes or []:
        node_type, data = _node_fields(node)
        if node_type not in WORK_NODE_TYPES:
            continue
        node_id = node.get("id") if isinstance(node, dict) else getattr(node, "id", None)
        if exclude_node_id is not None and node_id == exclude_node_id:
            continue
        team_allocs = data.get("teamAllocations")
        if not isinstance(team_allocs, list):
            continue
        for ta in team_allocs:
            if not isinstance(ta, dict):
                continue
            for m in ta.get("allocatedMembers") or []:
                if not isinstance(m, dict) or m.get("memberId") != member_id:
                    continue
                if windowed:
                    s = m.get("startDate") or ta.get("startDate") or data.get("startDate")
                    e = m.get("endDate") or ta.get("endDate") or data.get("endDate")
                    if s and e and not periods_overlap(s, e, start_date, end_date):
                        continue
                total += max(0.0, coerce_number(m.get("hours")))
    return total


__all__ = ["member_allocations", "member_allocation_details", "member_total_allocations", "WORK_NODE_TYPES"]
