"""
Event-driven rollup: an ``on_update`` handler for ``NodeController``.

A parent controller reacts to metric changes published by one of its
children by recomputing its own rollup and publishing the result, which in
turn reaches its own parent. Each level recalculates only itself.
"""
from __future__ import annotations
from typing import List

from core_logging import get_logger, log_debug
from core_models.models import UpdateEvent
from core_hierarchy.rollup import contains_metric_fields
from core_hierarchy.service import HierarchyService

logger = get_logger("core_hierarchy.propagation")


def make_rollup_handler(service: HierarchyService):
    def on_update(controller, event: UpdateEvent, fields: List[str]) -> None:
        if not contains_metric_fields(fields):
            return
        if event.publisherId not in service.child_ids(controller.node_id):
            log_debug(logger, "hierarchy", "rollup.ignored_non_child", node_id=controller.node_id,
                      publisher_id=event.publisherId)
            return
        result = service.recalculate_rollup(
            controller.node_id, fields, propagate=False,
            pending={event.publisherId: dict(event.data)},
        )
        if result is None or not result.written or not result.child_ids:
            return
        patch = {"rollupEstimate": result.rollup_estimate, "totalCost": result.total_cost}
        controller.data.update(patch)
        controller.bus.publish(controller.node_id, patch,
                               {"nodeType": controller.node_type, "source": "rollup"})

    return on_update


__all__ = ["make_rollup_handler"]
