from core_config import get_settings

from .base import GraphStore, Direction
from .codec import parse_json_if_string, encode_fields, decode_fields
from .memory import MemoryStore
from .arangodb import ArangoStore


def get_store() -> GraphStore:
    """Build the configured store: in-memory when OFFLINE_MODE is set, ArangoDB otherwise."""
    if get_settings().offline_mode:
        return MemoryStore()
    return ArangoStore()


__all__ = [
    "GraphStore", "Direction", "MemoryStore", "ArangoStore", "get_store",
    "parse_json_if_string", "encode_fields", "decode_fields",
]
