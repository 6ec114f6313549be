from core_hierarchy.rollup import (
    calculate_rollup_estimate, child_contribution, contains_hierarchy_fields,
    contains_metric_fields, direct_estimate,
)
from core_hierarchy.service import HierarchyService, RollupResult, PARENT_CHILD
from core_hierarchy.propagation import make_rollup_handler

__all__ = [
    "HierarchyService", "RollupResult", "PARENT_CHILD", "make_rollup_handler",
    "calculate_rollup_estimate", "child_contribution", "contains_hierarchy_fields",
    "contains_metric_fields", "direct_estimate",
]
