import hashlib, re, uuid

__all__ = ["generate_request_id", "generate_node_id", "edge_id", "is_node_id"]

_NODE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9\-:_\.]*$")

def generate_request_id() -> str:
    """
    Non-deterministic 16-hex id for logging/health/exception paths.
    """
    return uuid.uuid4().hex[:16]

def generate_node_id(node_type: str) -> str:
    """New node id, prefixed with its type for readable logs (``feature-1a2b…``)."""
    return f"{node_type}-{uuid.uuid4().hex[:12]}"

def is_node_id(value: str) -> bool:
    return bool(_NODE_ID_RE.match(value or ""))

def edge_id(from_id: str, to_id: str, edge_type: str) -> str:
    """
    Deterministic edge id from its endpoints and type.

    Re-creating the same relationship yields the same id, so a duplicate
    create is detectable as a conflict instead of producing a second edge.
    The short hash keeps the id a valid ArangoDB document key.
    """
    digest = hashlib.sha256(f"{edge_type}|{from_id}|{to_id}".encode("utf-8")).hexdigest()[:16]
    return f"{edge_type.lower()}-{digest}"
