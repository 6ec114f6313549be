import pytest
from fastapi.testclient import TestClient

import planner_api.app as planner_app
from core_models.models import Node
from core_storage.memory import MemoryStore


@pytest.fixture
def mem():
    store = MemoryStore()
    store.create_node(Node(id="epic", type="feature", data={"originalEstimate": 2}))
    store.create_node(Node(id="story", type="feature", data={"originalEstimate": 3, "cost": 300}))
    return store


@pytest.fixture
def client(monkeypatch, mem):
    monkeypatch.setattr(planner_app, "store", lambda: mem)
    return TestClient(planner_app.app)


def test_healthz_and_readyz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/readyz").json() == {"ready": True, "mode": "offline"}


def test_attach_list_and_detach_child(client, mem):
    res = client.post("/api/nodes/epic/children", json={"childId": "story"})
    assert res.status_code == 201
    assert res.json()["relationship"]["childIds"] == ["story"]
    assert res.headers.get("x-request-id")
    assert mem.get_node("epic").data["rollupEstimate"] == 3

    listed = client.get("/api/nodes/epic/children").json()
    assert [c["id"] for c in listed["children"]] == ["story"]
    assert listed["relationship"]["isRollup"] is True
    assert client.get("/api/nodes/story/parent").json() == {"nodeId": "story", "parentId": "epic"}

    res = client.delete("/api/nodes/epic/children/story")
    assert res.status_code == 200
    assert res.json()["relationship"]["childIds"] == []
    assert client.get("/api/nodes/story/parent").json()["parentId"] is None


def test_duplicate_attach_is_a_conflict(client):
    client.post("/api/nodes/epic/children", json={"childId": "story"})
    res = client.post("/api/nodes/epic/children", json={"childId": "story"})
    assert res.status_code == 409
    body = res.json()
    assert body["error"]["code"] == "conflict"
    assert body["error"]["request_id"] == body["request_id"]


def test_hierarchy_errors_map_to_status_codes(client):
    res = client.post("/api/nodes/epic/children", json={"childId": "epic"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "invalid_edge"

    res = client.post("/api/nodes/epic/children", json={"childId": "ghost"})
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "not_found"

    assert client.delete("/api/nodes/epic/children/story").status_code == 404
    assert client.get("/api/nodes/ghost/children").status_code == 404


def test_missing_body_field_is_validation_error(client):
    res = client.post("/api/nodes/epic/children", json={})
    assert res.status_code == 422
    assert res.json()["error"]["code"] == "validation_failed"


def test_recalculate_reports_rollup(client, mem):
    client.post("/api/nodes/epic/children", json={"childId": "story"})
    mem.update_node("story", {"originalEstimate": 5})
    body = client.post("/api/nodes/epic/recalculate").json()
    assert body["rollupEstimate"] == 5
    assert body["totalCost"] == 300
    assert body["childIds"] == ["story"]
    assert body["written"] is True


def test_storage_outage_is_503(client, mem):
    mem.fail_writes = True
    res = client.post("/api/nodes/epic/children", json={"childId": "story"})
    assert res.status_code == 503
    assert res.json()["error"]["code"] == "storage_unavailable"


def test_cost_summary_repairs_and_totals(client):
    payload = {
        "teamAllocations": '[{"teamId": "t1", "allocatedMembers": '
                           '[{"memberId": "m1", "hours": "16"}, {"memberId": "m2", "hours": 24}, {"memberId": ""}]}]',
        "availableMembers": [
            {"memberId": "m1", "name": "Ada", "dailyRate": 300},
            {"memberId": "m2", "name": "Lin", "dailyRate": 400},
        ],
    }
    body = client.post("/api/allocations/cost-summary", json=payload).json()
    assert body["totalCost"] == 1800
    assert body["totalHours"] == 40
    assert [a["memberId"] for a in body["allocations"]] == ["m1", "m2"]


def test_cost_summary_rejects_unusable_allocations(client):
    res = client.post("/api/allocations/cost-summary", json={"teamAllocations": [{"hours": 3}]})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_failed"


def test_member_details(client):
    res = client.post("/api/allocations/member-details", json={
        "startDate": "2024-01-01", "duration": 10, "hours": 40,
        "capacity": {"hoursPerDay": 8, "dailyRate": 400},
    })
    body = res.json()
    assert res.status_code == 200
    assert body["endDate"] == "2024-01-15"
    assert body["workingDays"] == 10
    assert body["cost"] == 2000
