from __future__ import annotations

import time
from collections.abc import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_COUNTER = Counter(
    "scribe_request_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "scribe_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
)
LOGIN_FAILURES = Counter(
    "scribe_login_failures_total",
    "Password sign-in attempts rejected by the credential check",
)
SLUG_COLLISIONS = Counter(
    "scribe_slug_collisions_total",
    "Slug inserts that lost a uniqueness race and were retried",
)
TOGGLE_CONFLICTS = Counter(
    "scribe_toggle_conflicts_total",
    "Like/bookmark writes rejected by the (account, post) uniqueness constraint",
    ["kind"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start
        # Label by route template so /posts/1 and /posts/2 share a series.
        route = request.scope.get("route")
        path_template = getattr(route, "path", "unmatched")
        REQUEST_COUNTER.labels(
            request.method, path_template, response.status_code
        ).inc()
        REQUEST_LATENCY.labels(request.method, path_template).observe(duration)
        return response


def metrics_response() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
