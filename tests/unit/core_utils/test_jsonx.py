from core_models.models import HierarchyRelationship
from core_utils import jsonx


def test_jsonx_roundtrip():
    obj = {"a": 1, "b": ["x", 2]}
    s = jsonx.dumps(obj)
    assert isinstance(s, str)
    assert jsonx.loads(s) == obj


def test_dumps_sorts_keys_for_stable_stored_text():
    assert jsonx.dumps({"b": 1, "a": {"d": 2, "c": 3}}) == '{"a":{"c":3,"d":2},"b":1}'


def test_sanitize_handles_models_sets_and_infinity():
    rel = HierarchyRelationship(parentId="p", childIds=["c"])
    out = jsonx.sanitize({"rel": rel, "ids": {"x"}, "min_days": float("inf"), "err": ValueError("bad")})
    assert out["rel"] == {"parentId": "p", "childIds": ["c"], "isRollup": True}
    assert out["ids"] == ["x"]
    assert out["min_days"] is None
    assert out["err"] == {"error": "ValueError", "message": "bad"}


def test_loads_tolerates_bom():
    assert jsonx.loads("\ufeff[1]") == [1]
