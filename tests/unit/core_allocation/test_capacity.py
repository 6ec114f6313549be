import math

from core_allocation.capacity import (
    check_over_allocation, effective_capacity, feature_allocation, hours_per_day,
    hours_to_percentage, minimum_duration, percentage_to_hours, team_bandwidth, weekly_capacity,
)
from core_models.models import AvailableMember


def test_hours_per_day_defaults_only_when_missing():
    assert hours_per_day({}) == 8
    assert hours_per_day({"hoursPerDay": "6"}) == 6
    assert hours_per_day({"hoursPerDay": 0}) == 0
    assert hours_per_day(AvailableMember(memberId="m", hoursPerDay=7)) == 7


def test_weekly_capacity_prefers_explicit_value():
    assert weekly_capacity({"hoursPerDay": 6, "daysPerWeek": 4}) == 24
    assert weekly_capacity({"hoursPerDay": 6, "weeklyCapacity": 30}) == 30
    assert weekly_capacity(AvailableMember(memberId="m")) == 40


def test_effective_capacity_weekly_and_over_duration():
    assert effective_capacity(40, 50) == 20
    assert effective_capacity(40, 250) == 40  # percentage clamped
    assert effective_capacity(40, 50, project_duration_days=10) == 40
    assert effective_capacity({"hoursPerDay": 8, "daysPerWeek": 4}, 100, project_duration_days=4) == 32


def test_over_allocation_reports_excess():
    res = check_over_allocation(25, {"weeklyCapacity": 40}, 50)
    assert res.isOverAllocated is True
    assert res.overAllocatedBy == 5
    assert res.effectiveCapacity == 20
    assert res.remainingCapacity == 0


def test_over_allocation_counts_hours_elsewhere():
    res = check_over_allocation(10, 40, 100, allocated_elsewhere=25)
    assert res.isOverAllocated is False
    assert res.allocatedHoursElsewhere == 25
    assert res.remainingCapacity == 5

    assert check_over_allocation(10, 40, 100, allocated_elsewhere=35).overAllocatedBy == 5


def test_minimum_duration():
    assert minimum_duration(16, {"hoursPerDay": 8}) == 2
    assert minimum_duration(17, {"hoursPerDay": 8}) == 3
    assert minimum_duration(0, {"hoursPerDay": 8}) == 0
    assert minimum_duration(10, {"hoursPerDay": 8}, existing_daily_hours=8) == math.inf
    assert minimum_duration(10, {"hoursPerDay": 0}) == math.inf


def test_percentage_conversions_are_clamped():
    assert hours_to_percentage(20, 40) == 50
    assert hours_to_percentage(80, 40) == 100
    assert hours_to_percentage(10, 0) == 0
    assert percentage_to_hours(150, 40) == 40
    assert percentage_to_hours(-5, 40) == 0


def test_feature_allocation_against_existing_load():
    out = feature_allocation(40, 10, {"hoursPerDay": 8}, existing_allocations=60)
    assert out["availableHours"] == 20
    assert out["isOverallocated"] is True
    assert out["daysEquivalent"] == 5
    assert out["percentage"] == 50
    assert out["minimumDurationNeeded"] == 20  # 2h/day left


def test_team_bandwidth_sums_effective_capacity():
    members = [{"weeklyCapacity": 40, "allocation": 50}, {"hoursPerDay": 8}]
    assert team_bandwidth(members) == 60
    assert team_bandwidth([]) == 0
