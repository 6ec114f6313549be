from datetime import date, datetime

import pytest
from pydantic import ValidationError

from core_models import Edge, HierarchyRelationship, Node, UpdateEvent, parse_date


def test_node_type_spellings_are_canonicalised():
    assert Node(id="m1", type="team-member").type == "teamMember"
    assert Node(id="f1", type="Feature", data=None).data == {}
    with pytest.raises(ValidationError):
        Node(id="x", type="spaceship")


def test_edge_accepts_canvas_and_storage_endpoint_names():
    canvas = Edge.model_validate({"id": "e1", "source": "a", "target": "b", "type": "parent-child"})
    assert (canvas.from_id, canvas.to_id, canvas.type) == ("a", "b", "PARENT_CHILD")
    assert canvas.model_dump(by_alias=True)["from"] == "a"
    assert canvas.parent_child().rollupContribution is True
    assert canvas.parent_child().weight == 1.0


def test_is_rollup_follows_children():
    assert HierarchyRelationship(childIds=["a"], isRollup=False).isRollup is True
    assert HierarchyRelationship().isRollup is False


def test_update_event_is_frozen():
    evt = UpdateEvent(publisherId="a", timestamp=1.0)
    with pytest.raises(ValidationError):
        evt.publisherId = "b"


def test_parse_date_is_lenient():
    assert parse_date("2024-01-05") == date(2024, 1, 5)
    assert parse_date("2024-01-05T10:00:00Z") == date(2024, 1, 5)
    assert parse_date(datetime(2024, 1, 5, 9)) == date(2024, 1, 5)
    assert parse_date("") is None
    assert parse_date("not a date") is None
    assert parse_date(42) is None
