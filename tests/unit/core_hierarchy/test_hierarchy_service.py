import logging

import pytest

from core_hierarchy import HierarchyService
from core_models.errors import HierarchyError, NotFoundError
from core_models.models import Edge


@pytest.fixture
def tree(store, seed):
    """
    root
     ├── epic            (originalEstimate 2)
     │    ├── story-a    (originalEstimate 3, cost 300)
     │    └── story-b    (duration 5,         cost 500)
     └── task            (originalEstimate 1, cost 100)
    """
    seed(store, "root", "feature", title="Root")
    seed(store, "epic", "feature", originalEstimate=2)
    seed(store, "story-a", "feature", originalEstimate=3, cost=300)
    seed(store, "story-b", "feature", duration=5, cost=500)
    seed(store, "task", "feature", originalEstimate=1, cost=100)
    svc = HierarchyService(store)
    svc.set_parent("story-a", "epic")
    svc.set_parent("story-b", "epic")
    svc.set_parent("epic", "root")
    svc.set_parent("task", "root")
    return svc


def test_rollup_sums_children_transitively_to_root(tree, store):
    epic = store.get_node("epic").data
    root = store.get_node("root").data
    assert epic["rollupEstimate"] == 3 + 5
    assert epic["totalCost"] == 800
    # epic contributes its own estimate plus its rollup; task its own estimate
    assert root["rollupEstimate"] == (2 + 8) + 1
    assert root["totalCost"] == 800 + 100
    assert root["isRollup"] is True


def test_child_change_propagates_up(tree, store):
    store.update_node("story-a", {"originalEstimate": 10})
    result = tree.recalculate_rollup("epic", ["originalEstimate"])
    assert result.rollup_estimate == 15
    assert result.propagated_to == ["root"]
    assert store.get_node("root").data["rollupEstimate"] == (2 + 15) + 1


def test_non_metric_change_does_not_recalculate(tree):
    assert tree.recalculate_rollup("epic", ["title"]) is None


def test_detach_and_reattach_moves_child(tree, store):
    tree.set_parent("task", "epic")
    root = store.get_node("root").data
    epic = store.get_node("epic").data
    assert "task" not in root["childIds"]
    assert epic["childIds"].count("task") == 1
    assert store.get_node("task").data["parentId"] == "epic"
    assert tree.get_parent("task") == "epic"
    assert tree.check_consistency("root") and tree.check_consistency("epic")
    assert epic["rollupEstimate"] == 3 + 5 + 1


def test_reattach_to_same_parent_only_updates_edge(tree, store):
    tree.set_parent("task", "root", weight=2.0, rollup_contribution=False)
    edges = store.get_edges("task", "PARENT_CHILD", "in")
    assert len(edges) == 1
    assert edges[0].properties["weight"] == 2.0
    # excluded child no longer counts
    assert store.get_node("root").data["rollupEstimate"] == 2 + 8


def test_removing_last_child_keeps_stale_rollup(store, seed):
    seed(store, "p", "feature")
    seed(store, "c", "feature", originalEstimate=4)
    svc = HierarchyService(store)
    svc.set_parent("c", "p")
    assert store.get_node("p").data["rollupEstimate"] == 4

    assert svc.remove_parent("c") == "p"
    p = store.get_node("p").data
    assert p["isRollup"] is False
    assert p["childIds"] == []
    assert p["rollupEstimate"] == 4
    assert store.get_node("c").data["parentId"] is None
    assert svc.remove_parent("c") is None


def test_self_parent_and_cycles_are_rejected(tree):
    with pytest.raises(HierarchyError):
        tree.set_parent("epic", "epic")
    with pytest.raises(HierarchyError):
        tree.set_parent("root", "story-a")


def test_missing_nodes_raise_not_found(tree):
    with pytest.raises(NotFoundError):
        tree.set_parent("ghost", "root")
    assert tree.recalculate_rollup("ghost") is None


def test_missing_child_is_skipped_with_warning(tree, store, caplog):
    store.create_edge(Edge(id="pc-broken", from_id="epic", to_id="vanished", type="PARENT_CHILD"))
    with caplog.at_level(logging.WARNING):
        result = tree.recalculate_rollup("epic")
    assert result.skipped_edges == ["pc-broken"]
    assert result.rollup_estimate == 8
    broken = [r for r in caplog.records if r.getMessage() == "hierarchy.inconsistent_reference"]
    assert broken and broken[0].edge_id == "pc-broken" and broken[0].target_id == "vanished"
    assert [c.id for c in tree.get_children("epic")] == ["story-a", "story-b"]


def test_write_failure_stops_only_that_branch(tree, store):
    store.fail_writes = True
    result = tree.recalculate_rollup("epic")
    assert result.written is False
    assert result.error
    assert result.propagated_to == []


def test_consistency_check_detects_drift(tree, store):
    assert tree.check_consistency("epic") is True
    store.update_node("epic", {"childIds": ["story-a"]})
    assert tree.check_consistency("epic") is False


def test_relationship_view(tree):
    rel = tree.get_relationship("epic")
    assert rel.parentId == "root"
    assert sorted(rel.childIds) == ["story-a", "story-b"]
    assert rel.isRollup is True


def test_notify_parent_only_for_metric_fields(tree, store):
    assert tree.notify_parent_of_changes("task", ["title"]) is None
    store.update_node("task", {"originalEstimate": 6})
    result = tree.notify_parent_of_changes("task", ["originalEstimate"])
    assert result.node_id == "root"
    assert store.get_node("root").data["rollupEstimate"] == (2 + 8) + 6


def test_emptying_a_parent_still_updates_its_ancestors(store, seed):
    seed(store, "g", "milestone")
    seed(store, "p", "feature", originalEstimate=0)
    seed(store, "c", "feature", originalEstimate=5)
    svc = HierarchyService(store)
    svc.set_parent("c", "p")
    svc.set_parent("p", "g")
    assert store.get_node("g").data["rollupEstimate"] == 5

    svc.remove_parent("c")
    assert store.get_node("p").data["rollupEstimate"] == 5  # emptied parent keeps its stale value
    assert store.get_node("g").data["rollupEstimate"] == 0
    assert svc.recalculate_rollup("g", propagate=False).rollup_estimate == 0
