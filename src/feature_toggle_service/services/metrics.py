"""
Prometheus metrics helpers shared across the FastAPI app and the background scheduler.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_LATENCY = Histogram(
    "feature_toggle_request_latency_seconds",
    "Latency of feature toggle HTTP handlers",
    ["method", "endpoint", "status"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)
TOGGLE_CHECKS = Counter(
    "feature_toggle_checks_total",
    "Enabled-state lookups answered by the toggle service",
    ["result"],
)
CACHE_REFRESHES = Counter(
    "feature_toggle_cache_refreshes_total",
    "Reloads of the in-process toggle cache",
    ["outcome"],
)
ADMIN_MUTATIONS = Counter(
    "feature_toggle_admin_mutations_total",
    "Administrative writes to the feature_toggles collection",
    ["action"],
)
TOGGLES_KNOWN = Gauge(
    "feature_toggles_known",
    "Number of toggles stored in the backing collection",
)
TOGGLES_ENABLED = Gauge(
    "feature_toggles_enabled",
    "Number of stored toggles that are currently enabled",
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Simple middleware that records request latency histogram values."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        route = request.scope.get("route")
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=getattr(route, "path", request.url.path),
            status=response.status_code,
        ).observe(elapsed)
        return response


def register_metrics(app: FastAPI) -> None:
    """Attach middleware and /metrics endpoint to the FastAPI app."""

    app.add_middleware(MetricsMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint() -> Response:
        return Response(generate_latest(), media_type="text/plain; version=0.0.4")
