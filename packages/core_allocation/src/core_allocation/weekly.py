"""
Week-level views of allocations.

Weeks are ISO weeks (Monday start) and identified as ``YYYY-Www``.
Allocation hours are spread over the weeks they touch in proportion to the
calendar days that fall inside each week.
"""
from __future__ import annotations
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping

from core_models.ontology import parse_date
from core_allocation.capacity import coerce_number, effective_capacity, member_value


def week_id(d: date) -> str:
    year, week, _ = d.isocalendar()
    return f"{year}-W{week:02d}"


def _week_start(d: date) -> date:
    return d - timedelta(days=d.weekday())


def _weeks(start: date, end: date) -> List[date]:
    out: List[date] = []
    cur = _week_start(start)
    while cur <= end:
        out.append(cur)
        cur += timedelta(days=7)
    return out


def weekly_buckets(start_date: Any, end_date: Any) -> List[str]:
    start, end = parse_date(start_date), parse_date(end_date)
    if start is None or end is None or end < start:
        return []
    return [week_id(w) for w in _weeks(start, end)]


def breakdown_by_week(allocation: Mapping[str, Any], node_id: str = "", node_name: str = "") -> List[Dict[str, Any]]:
    """
    Split one time-boxed allocation (``startDate``, ``endDate``, ``hours``)
    into per-week slices.
    """
    start, end = parse_date(allocation.get("startDate")), parse_date(allocation.get("endDate"))
    if start is None or end is None or end < start:
        return []
    hours = max(0.0, coerce_number(allocation.get("hours")))
    total_days = (end - start).days + 1
    out: List[Dict[str, Any]] = []
    for ws in _weeks(start, end):
        eff_start = max(start, ws)
        eff_end = min(end, ws + timedelta(days=6))
        days = (eff_end - eff_start).days + 1
        out.append({
            "weekId": week_id(ws),
            "startDate": eff_start.isoformat(),
            "endDate": eff_end.isoformat(),
            "hours": hours * days / total_days,
            "nodeId": allocation.get("nodeId", node_id),
            "nodeName": allocation.get("nodeName", node_name),
        })
    return out


def member_weekly_availability(
    member: Any,
    allocations: Iterable[Mapping[str, Any]],
    start_date: Any,
    end_date: Any,
) -> List[Dict[str, Any]]:
    """
    Per-week load of one member between *start_date* and *end_date*, against
    the member's effective weekly capacity. Weeks with nothing allocated are
    included.
    """
    capacity = effective_capacity(member, member_value(member, "allocation", 100.0))
    weeks: Dict[str, Dict[str, Any]] = {}
    start, end = parse_date(start_date), parse_date(end_date)
    if start is None or end is None or end < start:
        return []
    for ws in _weeks(start, end):
        weeks[week_id(ws)] = {
            "weekId": week_id(ws),
            "startDate": max(start, ws).isoformat(),
            "endDate": min(end, ws + timedelta(days=6)).isoformat(),
            "capacity": capacity,
            "allocatedHours": 0.0,
            "allocations": [],
        }
    for alloc in allocations or []:
        for piece in breakdown_by_week(alloc):
            bucket = weeks.get(piece["weekId"])
            if bucket is None:
                continue
            bucket["allocatedHours"] += piece["hours"]
            bucket["allocations"].append(
                {"nodeId": piece["nodeId"], "nodeName": piece["nodeName"], "hours": piece["hours"]}
            )
    out = []
    for bucket in weeks.values():
        allocated = bucket["allocatedHours"]
        bucket["availableHours"] = max(0.0, capacity - allocated)
        bucket["overAllocated"] = allocated > capacity
        bucket["overAllocatedBy"] = max(0.0, allocated - capacity)
        out.append(bucket)
    return out


__all__ = ["week_id", "weekly_buckets", "breakdown_by_week", "member_weekly_availability"]
