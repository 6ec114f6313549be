"""
Field-level JSON framing at the storage boundary.

Structured node fields (allocations, child ids, cost tables, rosters) are
persisted as JSON text. Everything above the store adapters works with the
decoded structures only; this module is the single place that converts
between the two, and it never lets malformed text escape as an exception.
"""
from __future__ import annotations
from typing import Any, Dict

from core_config.constants import JSON_LIST_FIELDS, JSON_DICT_FIELDS
from core_logging import get_logger, log_warning
from core_utils import jsonx

logger = get_logger("core_storage.codec")

__all__ = ["parse_json_if_string", "encode_fields", "decode_fields", "empty_for"]


def empty_for(field: str) -> Any:
    return {} if field in JSON_DICT_FIELDS else []


def parse_json_if_string(value: Any, empty: Any = None, *, field: str | None = None) -> Any:
    """
    Decode *value* when it is JSON text; pass structured values through.

    Malformed text, or text that decodes to the wrong container kind, yields
    *empty* (an empty list unless told otherwise) and a warning.
    """
    if empty is None:
        empty = empty_for(field) if field else []
    if value is None:
        return type(empty)()
    if not isinstance(value, (str, bytes)):
        return value
    if isinstance(value, str) and not value.strip():
        return type(empty)()
    try:
        parsed = jsonx.loads(value)
    except ValueError as exc:
        log_warning(logger, "storage", "codec.malformed_json", field=field, error=str(exc))
        return type(empty)()
    if not isinstance(parsed, type(empty)):
        log_warning(logger, "storage", "codec.unexpected_shape", field=field,
                    expected=type(empty).__name__, got=type(parsed).__name__)
        return type(empty)()
    return parsed


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize structured fields to JSON text for persistence."""
    out: Dict[str, Any] = {}
    for key, val in (data or {}).items():
        if key in JSON_LIST_FIELDS or key in JSON_DICT_FIELDS:
            out[key] = val if isinstance(val, str) else jsonx.dumps(val if val is not None else empty_for(key))
        else:
            out[key] = val
    return out


def decode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Parse structured fields back into lists/dicts after a read."""
    out: Dict[str, Any] = {}
    for key, val in (data or {}).items():
        if key in JSON_LIST_FIELDS or key in JSON_DICT_FIELDS:
            out[key] = parse_json_if_string(val, empty_for(key), field=key)
        else:
            out[key] = val
    return out
