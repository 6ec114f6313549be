from __future__ import annotations
from typing import Any, Iterable, Mapping

from core_logging import get_logger, log_debug
from core_models.models import CostSummary, MemberCostLine
from core_allocation.capacity import (
    coerce_number, days_per_week, effective_capacity, member_value, weekly_capacity,
)
from core_config.constants import DEFAULT_HOURS_PER_DAY

logger = get_logger("core_allocation.cost")


def cost_summary(team_allocations: Iterable[Any], available_members: Mapping[str, Any]) -> CostSummary:
    """
    Hours, days and cost over every allocated member found in
    *available_members* (keyed by memberId). Members missing from the lookup
    are a transient stale-roster state and are skipped.
    """
    summary = CostSummary()
    lookup = available_members or {}
    for ta in team_allocations or []:
        team_id = member_value(ta, "teamId")
        for alloc in member_value(ta, "allocatedMembers", None) or []:
            member_id = member_value(alloc, "memberId")
            member = lookup.get(member_id) if member_id else None
            if member is None:
                log_debug(logger, "allocation", "cost.member_skipped", member_id=member_id, team_id=team_id)
                continue
            hours = max(0.0, coerce_number(member_value(alloc, "hours")))
            hpd = (
                coerce_number(member_value(alloc, "hoursPerDay"))
                or coerce_number(member_value(member, "hoursPerDay"))
                or DEFAULT_HOURS_PER_DAY
            )
            days = hours / hpd
            rate = max(0.0, coerce_number(member_value(member, "dailyRate")))
            cost = days * rate
            capacity = effective_capacity(member, member_value(member, "allocation", 100.0))
            summary.allocations.append(MemberCostLine(
                memberId=str(member_id),
                name=str(member_value(member, "name", "") or ""),
                teamId=team_id,
                hours=hours,
                hoursPerDay=hpd,
                totalDays=days,
                cost=cost,
                dailyRate=rate,
                allocationPercentage=(hours / capacity * 100.0) if capacity > 0 else 0.0,
            ))
            summary.totalCost += cost
            summary.totalHours += hours
            summary.totalDays += days
    summary.dailyCost = summary.totalCost / summary.totalDays if summary.totalDays > 0 else 0.0
    return summary


def node_member_capacity(member: Any, project_duration_days: Any) -> float:
    """Hours a member can give one work node over its duration, after team allocation."""
    return effective_capacity(
        weekly_capacity(member),
        member_value(member, "allocation", 100.0),
        project_duration_days=max(0.0, coerce_number(project_duration_days)),
        member_days_per_week=days_per_week(member),
    )


__all__ = ["cost_summary", "node_member_capacity"]
