from __future__ import annotations
from enum import Enum
from typing import Literal, Tuple, Optional, Any, get_args
import re
from datetime import date, datetime
from dateutil import parser as _dtparser

# ── Enums ─────────────────────────────────────────────────────────────────────
NodeType = Literal["feature", "team", "teamMember", "provider", "milestone", "option", "meta"]
EdgeType = Literal["PARENT_CHILD", "TEAM_MEMBER", "FEATURE_TEAM", "FEATURE_DEPENDENCY", "CONNECTED"]

NODE_TYPES: Tuple[NodeType, ...] = get_args(NodeType)
EDGE_TYPES: Tuple[EdgeType, ...] = get_args(EdgeType)

# Only PARENT_CHILD edges encode hierarchy; every other type is ignored by rollups.
HIERARCHY_EDGE_TYPES: Tuple[EdgeType, ...] = ("PARENT_CHILD",)
# Node types that may sit in a parent/child tree and carry estimates.
ROLLUP_NODE_TYPES: Tuple[NodeType, ...] = ("feature", "milestone", "option", "provider")


class UpdateType(str, Enum):
    """Classification of a published change.

    The bus itself only emits CONTENT (a critical field changed) or MINOR;
    the other members are set explicitly by publishers.
    """
    POSITION = "POSITION"
    CONTENT = "CONTENT"
    CONNECTION = "CONNECTION"
    ALLOCATION = "ALLOCATION"
    ATTRIBUTE = "ATTRIBUTE"
    DELETE = "DELETE"
    MINOR = "MINOR"
    ANY = "ANY"


# ── Canonical regexes ────────────────────────────────────────────────────────
_EDGE_TOKEN_RE = re.compile(r"[^a-z]")

def canonical_node_type(kind: str) -> NodeType:
    """
    Normalize node type spellings seen on the wire ('team-member',
    'team_member', 'TeamMember') to the canonical token.
    """
    k = _EDGE_TOKEN_RE.sub("", str(kind or "").lower())
    for t in NODE_TYPES:
        if t.lower() == k:
            return t
    raise ValueError(f"invalid node type: {kind}")

def canonical_edge_type(kind: str) -> EdgeType:
    """
    Normalize various inputs to the canonical edge.type token.
    Accepts 'PARENT_CHILD'|'parent-child'|'parentchild', 'team_member', etc.
    """
    k = _EDGE_TOKEN_RE.sub("", str(kind or "").lower())
    for t in EDGE_TYPES:
        if t.replace("_", "").lower() == k:
            return t
    raise ValueError(f"invalid edge kind: {kind}")

def parse_date(value: Any) -> Optional[date]:
    """Coerce ISO strings, dates and datetimes to a ``date``.

    Empty or unparseable input yields ``None``; callers fall back to their
    defaults instead of failing.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return _dtparser.isoparse(value).date()
        except (ValueError, OverflowError):
            try:
                return _dtparser.parse(value).date()
            except (ValueError, OverflowError):
                return None
    return None

__all__ = [
    "NodeType","EdgeType","UpdateType",
    "NODE_TYPES","EDGE_TYPES","HIERARCHY_EDGE_TYPES","ROLLUP_NODE_TYPES",
    "canonical_node_type","canonical_edge_type","parse_date",
]
