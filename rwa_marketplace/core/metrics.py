"""Prometheus metrics for the RWA marketplace.

HTTP traffic is measured by :class:`PrometheusMiddleware`; business events
(mints, transfers, listings, purchases) are counted as the event service
records them; IPFS calls are counted by the IPFS client.  Business gauges
(deployed contracts, active listings, holders) are refreshed from the
database by the health endpoint and a periodic lifespan task.  All collectors,
including the process, platform and GC defaults, live in a dedicated registry
exposed at ``GET /metrics``.
"""

from __future__ import annotations

import time

import prometheus_client
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REGISTRY = prometheus_client.CollectorRegistry()
prometheus_client.ProcessCollector(registry=REGISTRY)
prometheus_client.PlatformCollector(registry=REGISTRY)
prometheus_client.GCCollector(registry=REGISTRY)

HTTP_REQUEST_DURATION = prometheus_client.Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["method", "route", "status"],
    buckets=(0.1, 0.5, 1, 2, 5),
    registry=REGISTRY,
)
HTTP_REQUESTS_TOTAL = prometheus_client.Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status"],
    registry=REGISTRY,
)
ACTIVE_CONNECTIONS = prometheus_client.Gauge(
    "active_connections",
    "Number of in-flight HTTP requests",
    registry=REGISTRY,
)
LEDGER_EVENTS_TOTAL = prometheus_client.Counter(
    "rwa_ledger_events_total",
    "Ledger and marketplace events emitted",
    ["event_type"],
    registry=REGISTRY,
)
TRANSACTIONS_TOTAL = prometheus_client.Counter(
    "rwa_transactions_total",
    "Mutating ledger/marketplace operations by outcome",
    ["type", "status"],
    registry=REGISTRY,
)
IPFS_OPERATIONS_TOTAL = prometheus_client.Counter(
    "ipfs_operations_total",
    "Total IPFS operations",
    ["operation", "status"],
    registry=REGISTRY,
)
CONTRACTS_DEPLOYED = prometheus_client.Gauge(
    "rwa_contracts_deployed",
    "Token contracts deployed",
    registry=REGISTRY,
)
ACTIVE_LISTINGS = prometheus_client.Gauge(
    "rwa_active_listings",
    "Listings currently open for purchase",
    registry=REGISTRY,
)
TOKEN_HOLDERS = prometheus_client.Gauge(
    "rwa_token_holders",
    "Distinct addresses holding a positive balance of any token",
    registry=REGISTRY,
)


def record_event(event_type: str) -> None:
    LEDGER_EVENTS_TOTAL.labels(event_type=event_type).inc()


def record_transaction(tx_type: str, status: str) -> None:
    TRANSACTIONS_TOTAL.labels(type=tx_type, status=status).inc()


def record_ipfs_operation(operation: str, status: str) -> None:
    IPFS_OPERATIONS_TOTAL.labels(operation=operation, status=status).inc()


def set_business_gauges(contracts: int, active_listings: int, holders: int) -> None:
    CONTRACTS_DEPLOYED.set(contracts)
    ACTIVE_LISTINGS.set(active_listings)
    TOKEN_HOLDERS.set(holders)


def metrics_response() -> Response:
    return Response(
        content=prometheus_client.generate_latest(REGISTRY),
        media_type=prometheus_client.CONTENT_TYPE_LATEST,
    )


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start = time.perf_counter()
        ACTIVE_CONNECTIONS.inc()
        status_code = 500
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            ACTIVE_CONNECTIONS.dec()
            # Use the route template so per-id paths share one label value.
            route = request.scope.get("route")
            route_path = getattr(route, "path", None) or request.url.path
            labels = {
                "method": request.method,
                "route": route_path,
                "status": str(status_code),
            }
            HTTP_REQUEST_DURATION.labels(**labels).observe(time.perf_counter() - start)
            HTTP_REQUESTS_TOTAL.labels(**labels).inc()
