"""
core_allocation: capacity, calendar, cost and weekly-load calculations.

Everything except ``TeamResourceTracker`` is a pure function that clamps or
defaults bad input instead of raising; ``repair_team_allocations`` is the one
place that rejects a payload.
"""
from core_allocation.capacity import (
    weekly_capacity, effective_capacity, available_hours, minimum_duration,
    hours_to_percentage, percentage_to_hours, feature_allocation, team_bandwidth,
    check_over_allocation,
)
from core_allocation.calendar import (
    calendar_duration, working_days, end_date_from_duration, periods_overlap, default_timeframe,
)
from core_allocation.allocation import member_allocations, member_allocation_details, member_total_allocations
from core_allocation.cost import cost_summary, node_member_capacity
from core_allocation.weekly import weekly_buckets, breakdown_by_week, member_weekly_availability
from core_allocation.repair import repair_team_allocations
from core_allocation.tracker import TeamResourceTracker

__all__ = [
    "weekly_capacity", "effective_capacity", "available_hours", "minimum_duration",
    "hours_to_percentage", "percentage_to_hours", "feature_allocation", "team_bandwidth",
    "check_over_allocation",
    "calendar_duration", "working_days", "end_date_from_duration", "periods_overlap", "default_timeframe",
    "member_allocations", "member_allocation_details", "member_total_allocations",
    "cost_summary", "node_member_capacity",
    "weekly_buckets", "breakdown_by_week", "member_weekly_availability",
    "repair_team_allocations", "TeamResourceTracker",
]
