from time import perf_counter

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_COUNT = Counter(
    "docvault_http_requests_total",
    "HTTP requests handled",
    ["method", "route", "status"],
)
REQUEST_LATENCY = Histogram(
    "docvault_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route"],
)
DOWNLOADS = Counter(
    "docvault_downloads_total",
    "Download attempts by outcome",
    ["outcome"],
)
INTEGRITY_FAILURES = Counter(
    "docvault_integrity_failures_total",
    "Downloads whose decrypted bytes did not match the stored content hash",
)


def _route_template(request: Request) -> str:
    # Label by route template, not raw path, to keep cardinality bounded.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            route = _route_template(request)
            REQUEST_COUNT.labels(request.method, route, str(status)).inc()
            REQUEST_LATENCY.labels(request.method, route).observe(
                perf_counter() - start
            )
