"""
Capacity arithmetic for team members.

All functions are pure and tolerant: missing or junk inputs fall back to the
configured defaults, negative results are clamped to zero and nothing here
raises on bad data.
"""
from __future__ import annotations
import math
from typing import Any, Iterable, Optional

from core_config.constants import DEFAULT_DAYS_PER_WEEK, DEFAULT_HOURS_PER_DAY
from core_models.models import OverAllocation


def coerce_number(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if not math.isnan(value) else default
    try:
        out = float(str(value).strip())
    except ValueError:
        return default
    return out if not math.isnan(out) else default


def member_value(member: Any, key: str, default: Any = None) -> Any:
    """Read *key* from a mapping or a pydantic model alike."""
    if member is None:
        return default
    if isinstance(member, dict):
        return member.get(key, default)
    return getattr(member, key, default)


def hours_per_day(member: Any) -> float:
    return max(0.0, coerce_number(member_value(member, "hoursPerDay"), DEFAULT_HOURS_PER_DAY))


def days_per_week(member: Any) -> float:
    dpw = coerce_number(member_value(member, "daysPerWeek"), DEFAULT_DAYS_PER_WEEK)
    return min(7.0, dpw) if dpw > 0 else DEFAULT_DAYS_PER_WEEK


def clamp_pct(pct: Any, default: float = 100.0) -> float:
    return min(100.0, max(0.0, coerce_number(pct, default)))


def weekly_capacity(member: Any) -> float:
    """Hours per week: explicit ``weeklyCapacity`` when set, else hoursPerDay x daysPerWeek."""
    explicit = member_value(member, "weeklyCapacity")
    if explicit not in (None, "") and coerce_number(explicit, -1.0) >= 0:
        return coerce_number(explicit)
    return hours_per_day(member) * days_per_week(member)


def effective_capacity(
    member_or_weekly: Any,
    team_allocation_pct: Any,
    project_duration_days: Optional[float] = None,
    member_days_per_week: Optional[float] = None,
) -> float:
    """
    Weekly hours available to one team after its allocation percentage.

    With *project_duration_days* the result is the total over that many
    working days instead of per week.
    """
    if isinstance(member_or_weekly, (int, float)) and not isinstance(member_or_weekly, bool):
        weekly = max(0.0, float(member_or_weekly))
        dpw = member_days_per_week or DEFAULT_DAYS_PER_WEEK
    else:
        weekly = weekly_capacity(member_or_weekly)
        dpw = member_days_per_week or days_per_week(member_or_weekly)
    share = clamp_pct(team_allocation_pct) / 100.0
    if project_duration_days is None:
        return weekly * share
    daily = weekly / dpw if dpw > 0 else 0.0
    return daily * share * max(0.0, coerce_number(project_duration_days))


def available_hours(duration: Any, capacity: Any, existing_allocations: Any = 0) -> float:
    total = hours_per_day(capacity) * max(0.0, coerce_number(duration))
    return max(0.0, total - coerce_number(existing_allocations))


def minimum_duration(requested_hours: Any, capacity: Any, existing_daily_hours: Any = 0) -> float:
    """
    Days needed to deliver *requested_hours* given what is left of the
    member's day after *existing_daily_hours*. ``math.inf`` when nothing is
    left; that is a valid answer, not an error.
    """
    per_day = hours_per_day(capacity) - max(0.0, coerce_number(existing_daily_hours))
    if per_day <= 0:
        return math.inf
    requested = coerce_number(requested_hours)
    if requested <= 0:
        return 0
    return math.ceil(requested / per_day)


def hours_to_percentage(hours: Any, capacity: Any) -> float:
    cap = coerce_number(capacity)
    if cap <= 0:
        return 0.0
    return min(100.0, max(0.0, coerce_number(hours) / cap * 100.0))


def percentage_to_hours(percentage: Any, capacity: Any) -> float:
    return clamp_pct(percentage, 0.0) / 100.0 * max(0.0, coerce_number(capacity))


def feature_allocation(hours: Any, duration: Any, capacity: Any, existing_allocations: Any = 0) -> dict:
    hrs = max(0.0, coerce_number(hours))
    days = max(0.0, coerce_number(duration))
    hpd = hours_per_day(capacity)
    avail = available_hours(days, capacity, existing_allocations)
    existing_daily = coerce_number(existing_allocations) / days if days > 0 else 0.0
    return {
        "hours": hrs,
        "percentage": hours_to_percentage(hrs, hpd * days),
        "daysEquivalent": hrs / hpd if hpd > 0 else 0.0,
        "isOverallocated": hrs > avail,
        "availableHours": avail,
        "minimumDurationNeeded": minimum_duration(hrs, capacity, existing_daily),
    }


def team_bandwidth(members: Iterable[Any]) -> float:
    """Sum of every member's effective weekly capacity for the team."""
    total = 0.0
    for m in members or []:
        total += effective_capacity(m, member_value(m, "allocation", 100.0))
    return total


def check_over_allocation(
    requested_hours: Any,
    capacity: Any,
    team_allocation_pct: Any,
    allocated_elsewhere: Optional[float] = None,
) -> OverAllocation:
    """
    Compare a request against the member's effective weekly capacity.

    When *allocated_elsewhere* is known (hours committed to other work in
    overlapping windows) it counts against the same capacity.
    """
    eff = effective_capacity(capacity, team_allocation_pct)
    requested = max(0.0, coerce_number(requested_hours))
    elsewhere = max(0.0, coerce_number(allocated_elsewhere)) if allocated_elsewhere is not None else 0.0
    load = requested + elsewhere
    return OverAllocation(
        isOverAllocated=load > eff,
        overAllocatedBy=max(0.0, load - eff),
        effectiveCapacity=eff,
        allocatedHoursElsewhere=elsewhere,
        remainingCapacity=max(0.0, eff - load),
    )


__all__ = [
    "coerce_number", "member_value", "hours_per_day", "days_per_week",
    "weekly_capacity", "effective_capacity", "available_hours", "minimum_duration",
    "hours_to_percentage", "percentage_to_hours", "feature_allocation",
    "team_bandwidth", "check_over_allocation",
]
