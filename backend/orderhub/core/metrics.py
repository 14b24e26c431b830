# Centralized Prometheus metrics. Webhook, allocation and tracking code
# bump these counters; the middleware below times every request.

from time import monotonic

from fastapi import Request
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware


# Webhook authentication outcomes: ok, missing_fields, invalid_credentials,
# stale_timestamp, replayed_nonce, invalid_signature.
webhook_auth_total = Counter(
    "webhook_auth_total",
    "Inbound webhook authentication attempts grouped by outcome",
    ["outcome"],
)

# Order sync results: created, updated, invalid.
order_sync_total = Counter(
    "order_sync_total",
    "Order sync webhooks grouped by result",
    ["result"],
)

# Allocation stages that degraded without failing the order sync.
allocation_warnings_total = Counter(
    "allocation_warnings_total",
    "Allocation stages that failed and were reported as warnings",
    ["stage"],
)

# Carrier refresh outcomes: changed, unchanged, timeout, error.
tracking_refresh_total = Counter(
    "tracking_refresh_total",
    "Shipment tracking refreshes grouped by result",
    ["result"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Latency of API requests in seconds",
    ["method", "endpoint"],
)
REQUEST_COUNT = Counter(
    "http_request_count_total",
    "Total API requests",
    ["method", "endpoint", "http_status"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = monotonic()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or request.url.path
        REQUEST_LATENCY.labels(request.method, endpoint).observe(monotonic() - start)
        REQUEST_COUNT.labels(request.method, endpoint, str(response.status_code)).inc()
        return response
