from __future__ import annotations
from typing import Any, Iterable, Mapping, Optional

HIERARCHY_FIELDS = ("parentId", "childIds", "isRollup", "originalEstimate", "rollupEstimate")
METRIC_FIELDS = ("duration", "cost", "totalCost", "originalEstimate", "rollupEstimate")


def as_number(value: Any) -> float:
    """Coerce stored numbers (often strings from form inputs) to float; junk is 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value == value else 0.0
    try:
        return float(str(value).strip())
    except ValueError:
        return 0.0


def contains_hierarchy_fields(fields: Iterable[str]) -> bool:
    return any(f in HIERARCHY_FIELDS or f.startswith("hierarchy.") for f in fields)


def contains_metric_fields(fields: Iterable[str]) -> bool:
    return any(f in METRIC_FIELDS for f in fields)


def calculate_rollup_estimate(
    original_estimate: Optional[float],
    child_estimates: Iterable[float],
    include_original: bool = False,
) -> float:
    total = sum(as_number(c) for c in child_estimates)
    if include_original:
        total += as_number(original_estimate)
    return total


def direct_estimate(data: Mapping[str, Any]) -> float:
    """A node's own work: ``originalEstimate``, falling back to ``duration``."""
    if data.get("originalEstimate") not in (None, ""):
        return as_number(data.get("originalEstimate"))
    return as_number(data.get("duration"))


def child_contribution(data: Mapping[str, Any]) -> float:
    """Direct estimate plus the aggregated estimate when the child is itself a rollup."""
    total = direct_estimate(data)
    if data.get("isRollup"):
        total += as_number(data.get("rollupEstimate"))
    return total


def child_cost(data: Mapping[str, Any]) -> float:
    total = as_number(data.get("cost"))
    if data.get("isRollup"):
        total += as_number(data.get("totalCost"))
    return total


__all__ = [
    "HIERARCHY_FIELDS", "METRIC_FIELDS", "as_number",
    "contains_hierarchy_fields", "contains_metric_fields", "calculate_rollup_estimate",
    "direct_estimate", "child_contribution", "child_cost",
]
