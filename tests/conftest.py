"""
Global conftest for planner tests.

1. A pretty unified-diff assertion helper for clearer dict-vs-dict failures.
2. Small shared fixtures: an in-memory graph store, fast sync timings and a
   helper that seeds nodes.
"""

import json
import difflib

import pytest

from core_config import Settings
from core_models.models import Node
from core_storage.memory import MemoryStore


# --------------------------------------------------------------------------- #
# Pretty diff for dict comparisons                                            #
# --------------------------------------------------------------------------- #
def pytest_assertrepr_compare(op, left, right):
    """Pretty unified-diff output when comparing two dicts with ==."""
    if isinstance(left, dict) and isinstance(right, dict) and op == "==":
        lhs = json.dumps(left, indent=2, sort_keys=True, default=str).splitlines()
        rhs = json.dumps(right, indent=2, sort_keys=True, default=str).splitlines()
        return [""] + list(
            difflib.unified_diff(lhs, rhs, fromfile="left", tofile="right")
        )


# --------------------------------------------------------------------------- #
# Fixtures                                                                    #
# --------------------------------------------------------------------------- #
@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def fast_settings():
    """Sync timings shrunk so debounce tests finish in milliseconds."""
    return Settings(
        SYNC_DEBOUNCE_MS=20,
        SYNC_AGGREGATE_DEBOUNCE_MS=30,
        SYNC_RECENT_BUFFER_MS=100,
        SYNC_PROCESS_BUFFER_MS=200,
        SYNC_UPDATE_GRACE_MS=10,
    )


@pytest.fixture
def seed():
    """``seed(store, "f1", "feature", duration=5)`` creates and returns a node."""
    def _seed(store, node_id, node_type="feature", **data):
        return store.create_node(Node(id=node_id, type=node_type, data=data))
    return _seed
