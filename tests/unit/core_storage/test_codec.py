import logging

from core_storage.codec import decode_fields, encode_fields, parse_json_if_string


def test_malformed_text_yields_empty_collection(caplog):
    with caplog.at_level(logging.WARNING):
        assert parse_json_if_string("{oops", field="teamAllocations") == []
        assert parse_json_if_string("[1", field="season") == {}
    assert any(r.getMessage() == "codec.malformed_json" for r in caplog.records)


def test_wrong_shape_and_blank_text():
    assert parse_json_if_string('{"a": 1}', field="childIds") == []
    assert parse_json_if_string("   ", field="childIds") == []
    assert parse_json_if_string(None, field="position") == {}
    assert parse_json_if_string([1, 2], field="childIds") == [1, 2]


def test_encode_only_touches_structured_fields():
    out = encode_fields({"title": "x", "childIds": ["b", "a"], "position": {"y": 1, "x": 2}, "season": None})
    assert out["title"] == "x"
    assert out["childIds"] == '["b","a"]'
    assert out["position"] == '{"x":2,"y":1}'
    assert out["season"] == "{}"
    assert encode_fields({"childIds": '["kept"]'})["childIds"] == '["kept"]'


def test_decode_restores_structures():
    data = decode_fields({"title": "x", "childIds": '["a"]', "teamAllocations": ""})
    assert data == {"title": "x", "childIds": ["a"], "teamAllocations": []}
