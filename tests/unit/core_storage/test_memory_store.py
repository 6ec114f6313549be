import pytest

from core_models.errors import BackendUnavailable, ConflictError
from core_models.models import Edge, Node
from core_storage import MemoryStore, get_store


def test_update_merges_fields_and_records_write(store, seed):
    seed(store, "f1", "feature", title="A", duration=1)
    node = store.update_node("f1", {"duration": 3, "teamAllocations": [{"teamId": "t1"}]})
    assert node.data == {"title": "A", "duration": 3, "teamAllocations": [{"teamId": "t1"}]}
    assert store.raw_node("f1")["data"]["teamAllocations"] == '[{"teamId":"t1"}]'
    assert store.writes == [{"node_id": "f1", "fields": ["duration", "teamAllocations"]}]
    assert store.update_node("missing", {"x": 1}) is None


def test_malformed_persisted_field_reads_as_empty(store):
    store.put_raw_node("f1", "feature", {"teamAllocations": "{broken"})
    assert store.get_node("f1").data["teamAllocations"] == []


def test_duplicate_ids_conflict(store, seed):
    seed(store, "f1")
    with pytest.raises(ConflictError):
        store.create_node(Node(id="f1", type="feature"))
    store.create_edge(Edge(id="e1", from_id="f1", to_id="f1", type="CONNECTED"))
    with pytest.raises(ConflictError):
        store.create_edge(Edge(id="e1", from_id="f1", to_id="f1", type="CONNECTED"))


def test_edges_filter_by_type_and_direction(store, seed):
    for nid in ("a", "b", "c"):
        seed(store, nid)
    store.create_edge(Edge(id="ab", from_id="a", to_id="b", type="PARENT_CHILD"))
    store.create_edge(Edge(id="ca", from_id="c", to_id="a", type="CONNECTED"))
    assert [e.id for e in store.get_edges("a", "PARENT_CHILD", "out")] == ["ab"]
    assert store.get_edges("a", "PARENT_CHILD", "in") == []
    assert sorted(e.id for e in store.get_edges("a")) == ["ab", "ca"]

    store.update_edge("ab", {"weight": 2.0})
    assert store.get_edge("ab").properties == {"weight": 2.0}
    assert store.delete_node("a") is True
    assert store.get_edges("b") == []


def test_fail_writes_simulates_outage(seed):
    store = MemoryStore(fail_writes=True)
    with pytest.raises(BackendUnavailable):
        seed(store, "f1")
    assert store.get_node("f1") is None


def test_offline_mode_builds_memory_store():
    assert isinstance(get_store(), MemoryStore)
