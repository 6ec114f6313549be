from __future__ import annotations
from typing import Any, Mapping

import orjson as _orjson
from pydantic import BaseModel

__all__ = ["dumps", "loads", "sanitize"]

def sanitize(obj: Any) -> Any:
    """Recursively convert *obj* into something JSON-serialisable.

    - Exceptions → {"error": <Type>, "message": str(e)}
    - Pydantic models → model_dump(mode="json", by_alias=True)
    - bytes → UTF-8 string (replacement on errors)
    - sets/tuples → lists
    - floats that are not finite (``inf`` minimum durations) → None
    """
    if obj is None or isinstance(obj, (str, int, bool)):
        return obj
    if isinstance(obj, float):
        return obj if obj == obj and obj not in (float("inf"), float("-inf")) else None

    if isinstance(obj, BaseException):
        return {"error": obj.__class__.__name__, "message": str(obj)}

    if isinstance(obj, BaseModel):
        return sanitize(obj.model_dump(mode="python", by_alias=True))

    if isinstance(obj, (bytes, bytearray)):
        return obj.decode("utf-8", "replace")

    if isinstance(obj, Mapping):
        return {str(k): sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [sanitize(v) for v in obj]

    if hasattr(obj, "isoformat"):  # datetimes, dates
        return obj.isoformat()

    # enums and other scalars
    value = getattr(obj, "value", None)
    if isinstance(value, (str, int, float)):
        return value
    return str(obj)

def dumps(obj: Any) -> str:
    """
    JSON dump that returns a *str* (UTF-8) with deterministic key ordering.

    Sorted keys make the stored text of structured fields stable, so an
    unchanged allocation list never shows up as a diff after a round trip.
    """
    return _orjson.dumps(sanitize(obj), option=_orjson.OPT_SORT_KEYS).decode("utf-8")

def loads(data: str | bytes) -> Any:
    """JSON load from str/bytes; a leading UTF-8 BOM is tolerated.

    Raises ``orjson.JSONDecodeError`` (a ``ValueError``) on malformed input.
    """
    b = data.encode("utf-8") if isinstance(data, str) else data
    if b[:3] == b"\xef\xbb\xbf":
        b = b[3:]
    return _orjson.loads(b)
