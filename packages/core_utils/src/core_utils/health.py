"""
core_utils.health – health-check routes for FastAPI services.

Provides attach_health_routes() to wire /healthz and /readyz with custom
liveness and readiness checks.
"""

import asyncio
from typing import Awaitable, Callable, Mapping, Union

from fastapi import APIRouter, FastAPI

# A health check can return:
#  - bool
#  - dict (arbitrary JSON body)
#  - Awaitable of either
HealthCheck = Callable[[], Union[bool, dict, Awaitable[Union[bool, dict]]]]
HealthChecks = Mapping[str, HealthCheck]

__all__ = ["attach_health_routes", "HealthCheck", "HealthChecks"]


async def _run_check(fn: HealthCheck) -> Union[bool, dict]:
    try:
        res = fn()
        if asyncio.iscoroutine(res):
            res = await res
        return res
    except Exception:
        # A crashing probe reports unhealthy instead of a 500.
        return False


def attach_health_routes(app: FastAPI, *, checks: HealthChecks) -> None:
    """
    Register health-check endpoints on the app.

    Args:
        app: FastAPI application
        checks: mapping with keys "liveness" and/or "readiness" to callables
            returning bool or dict (sync or async).

    Endpoints:
        GET /healthz -> { "status": "ok" | "fail" } or custom dict.
        GET /readyz -> readiness check result directly if dict, or
                       { "ready": <bool> }.
    """
    router = APIRouter()
    liveness = checks.get("liveness")
    readiness = checks.get("readiness")

    @router.get("/healthz")
    async def _healthz():
        if liveness is None:
            return {"status": "ok"}
        res = await _run_check(liveness)
        if isinstance(res, dict):
            return res
        return {"status": "ok" if bool(res) else "fail"}

    @router.get("/readyz")
    async def _readyz():
        if readiness is None:
            return {"ready": True}
        res = await _run_check(readiness)
        if isinstance(res, dict):
            return res
        return {"ready": bool(res)}

    app.include_router(router)
