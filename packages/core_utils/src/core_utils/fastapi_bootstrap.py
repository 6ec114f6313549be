"""
core_utils.fastapi_bootstrap: one-call FastAPI wiring for planner services.

Applies request logging, the /metrics endpoint and optional CORS so each
service app stays small. Health endpoints are attached explicitly by each
service via core_utils.health.attach_health_routes.

Environment knobs (all optional):
  CORS_ORIGINS           Comma/space separated origins (e.g. "https://x, https://y").
"""
from __future__ import annotations
import os, re
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from core_logging.request_logging import attach_request_logging
from core_metrics.fastapi import attach_prometheus_endpoint

def _parse_origins(s: str | None) -> list[str]:
    if not s:
        return []
    return [p.strip() for p in re.split(r"[\s,]+", s) if p.strip()]

def setup_service(
    app: FastAPI,
    service_name: str,
    *,
    enable_cors_env: str = "CORS_ORIGINS",
    attach_metrics_endpoint: bool = True,
) -> None:
    """
    Apply standard wiring to `app`:

      • Request logging middleware (request/session id binding, ttfb metrics)
      • /metrics scrape endpoint
      • Optional CORS via starlette CORSMiddleware (origins from env var);
        the canvas front-end usually runs on a different origin in dev.
    """
    attach_request_logging(app, service=service_name, metric_prefix=service_name, ttfb_label_route=True)
    if attach_metrics_endpoint:
        attach_prometheus_endpoint(app)

    origins = _parse_origins(os.getenv(enable_cors_env))
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

__all__ = ["setup_service"]
