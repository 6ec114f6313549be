"""
Best-effort repair of team allocation payloads.

Stored allocations arrive with string numbers, missing members, stray
entries. Repair coerces what it can, drops what it cannot, and only rejects
the payload when nothing usable is left of a non-empty input.
"""
from __future__ import annotations
from typing import Any, List, Optional

from core_logging import get_logger, log_warning
from core_logging.error_codes import ErrorCode
from core_models.errors import AllocationValidationError
from core_models.models import MemberAllocation, TeamAllocation
from core_utils import jsonx
from core_allocation.capacity import coerce_number

logger = get_logger("core_allocation.repair")


def _repair_member(raw: Any) -> Optional[MemberAllocation]:
    if not isinstance(raw, dict):
        return None
    member_id = raw.get("memberId")
    if member_id in (None, ""):
        return None
    hours = coerce_number(raw.get("hours"), default=-1.0)
    if hours < 0:
        return None
    out = dict(raw, memberId=str(member_id), hours=hours)
    for key in ("hoursPerDay", "cost"):
        if key in out:
            out[key] = coerce_number(out[key], 0.0) or None
    return MemberAllocation.model_validate(out)


def _repair_entry(raw: Any, index: int) -> Optional[TeamAllocation]:
    if not isinstance(raw, dict):
        return None
    team_id = raw.get("teamId")
    if team_id in (None, ""):
        return None
    members_raw = raw.get("allocatedMembers")
    if isinstance(members_raw, str):
        try:
            members_raw = jsonx.loads(members_raw)
        except ValueError:
            members_raw = None
    if members_raw is None:
        members_raw = []
    if not isinstance(members_raw, list):
        return None
    members = [m for m in (_repair_member(x) for x in members_raw) if m is not None]
    dropped = len(members_raw) - len(members)
    if dropped:
        log_warning(logger, "allocation", "repair.members_dropped", team_id=str(team_id),
                    index=index, dropped=dropped)
    requested = sum(m.hours for m in members) if members else max(0.0, coerce_number(raw.get("requestedHours")))
    return TeamAllocation(
        teamId=str(team_id),
        requestedHours=requested,
        allocatedMembers=members,
        startDate=raw.get("startDate") or None,
        endDate=raw.get("endDate") or None,
    )


def repair_team_allocations(raw: Any) -> List[TeamAllocation]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = jsonx.loads(raw)
        except ValueError as exc:
            raise AllocationValidationError("team allocations are not valid JSON",
                                            details={"error": str(exc)}) from exc
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        raise AllocationValidationError("team allocations must be a list",
                                        details={"type": type(raw).__name__})
    if not raw:
        return []

    repaired = [r for r in (_repair_entry(x, i) for i, x in enumerate(raw)) if r is not None]
    if len(repaired) < len(raw):
        log_warning(logger, "allocation", "repair.entries_dropped", kept=len(repaired),
                    dropped=len(raw) - len(repaired))
    if not repaired:
        raise AllocationValidationError(
            "no valid team allocation entry left after repair",
            details={"received": len(raw), "code": ErrorCode.validation_failed.value},
        )
    return repaired


__all__ = ["repair_team_allocations"]
