"""
Métriques Prometheus pour l'application.

Ce module définit les métriques Prometheus du noyau (paliers de récupération, cache,
transactions de liaison, registre de versions) ainsi que le middleware HTTP et la route
`/metrics`.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Pipeline de récupération
RECOVERY_TIER_TOTAL = Counter(
    "recovery_tier_total",
    "Recovered objects by kind and pipeline tier",
    ["kind", "tier"],
)
REPAIR_STEP_TOTAL = Counter(
    "recovery_repair_step_total",
    "Repair steps that changed the payload text",
    ["step"],
)

# Cache par empreinte
CACHE_LOOKUPS_TOTAL = Counter(
    "fingerprint_cache_lookups_total",
    "Fingerprint cache lookups",
    ["result"],  # hit | miss | expired | bypass
)
CACHE_EVICTIONS_TOTAL = Counter(
    "fingerprint_cache_evictions_total",
    "Entries evicted because the cache exceeded its size bound",
)

# Transactions
LINK_RETRIES_TOTAL = Counter(
    "link_transaction_retries_total",
    "Link/unlink transactions retried after a conflict",
    ["operation"],
)
VERSION_RETRIES_TOTAL = Counter(
    "version_ledger_retries_total",
    "Version creations retried after a conflict",
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Compte les requêtes HTTP et mesure leur latence par route."""

    async def dispatch(self, request: Request, call_next):
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        start = time.perf_counter()
        response = await call_next(request)
        REQUEST_LATENCY.labels(route=path).observe(time.perf_counter() - start)
        REQUEST_COUNT.labels(
            method=request.method, route=path, status=str(response.status_code)
        ).inc()
        return response


@metrics_router.get("/metrics")
def metrics() -> Response:
    """Expose les métriques au format texte Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
