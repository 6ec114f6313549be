from datetime import date

from core_allocation.allocation import (
    member_allocation_details, member_allocations, member_total_allocations,
)
from core_models.models import Node


def test_member_allocations_split_by_roster_percentage():
    roster = [{"memberId": "a", "allocation": 50}, {"memberId": "b", "allocation": 25}, {"allocation": 100}]
    out = member_allocations(roster, 40)
    assert [(m.memberId, m.hours) for m in out] == [("a", 20), ("b", 10)]


def test_details_derive_end_date_from_duration():
    d = member_allocation_details("2024-01-01", None, 10, {"hoursPerDay": 8, "dailyRate": 400}, 40)
    assert d.endDate == "2024-01-15"
    assert d.calendarDays == 15
    assert d.workingDays == 10
    assert d.dailyHours == 4
    assert d.percentage == 50
    assert d.cost == 2000


def test_details_replace_end_before_start_and_default_duration():
    d = member_allocation_details(None, "2023-12-01", None, {}, 8, today=date(2024, 1, 1))
    assert d.startDate == "2024-01-01"
    assert d.endDate == "2024-01-15"


def test_details_percentage_is_capped():
    d = member_allocation_details("2024-01-01", "2024-01-02", 1, {"hoursPerDay": 8}, 40)
    assert d.workingDays == 1
    assert d.percentage == 100


def _nodes():
    return [
        Node(id="f1", type="feature", data={"teamAllocations": [{"teamId": "t", "allocatedMembers": [
            {"memberId": "m1", "hours": 10, "startDate": "2024-01-01", "endDate": "2024-01-10"},
        ]}]}),
        {"id": "o1", "type": "option", "data": {
            "startDate": "2024-03-01", "endDate": "2024-03-20",
            "teamAllocations": [{"teamId": "t", "allocatedMembers": [{"memberId": "m1", "hours": 5}]}],
        }},
        {"id": "t", "type": "team", "data": {"teamAllocations": [{"allocatedMembers": [{"memberId": "m1", "hours": 99}]}]}},
    ]


def test_total_allocations_across_work_nodes():
    assert member_total_allocations("m1", _nodes()) == 15
    assert member_total_allocations("m1", _nodes(), "2024-01-01", "2024-01-31") == 10
    assert member_total_allocations("m1", _nodes(), exclude_node_id="f1") == 5
    assert member_total_allocations("m2", _nodes()) == 0


def test_roster_entries_become_models_with_full_default_allocation():
    from core_allocation.allocation import roster_members

    members = roster_members([{"memberId": "a", "role": "dev"}, {"memberId": "b", "allocation": "150", "role": 3}, {}])
    assert [(m.memberId, m.allocation, m.role) for m in members] == [("a", 100, "dev"), ("b", 100, None)]
    assert [m.hours for m in member_allocations([{"memberId": "a"}], 12)] == [12]
