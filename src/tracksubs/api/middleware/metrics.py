"""Metrics middleware for automatic request tracking."""

from time import perf_counter

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tracksubs.core.metrics import active_requests, request_latency_seconds, request_total


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect latency, totals and in-flight counts for HTTP requests.

    Health and metrics endpoints are excluded so scrapes do not count themselves.
    """

    EXCLUDED_PATHS = {"/metrics", "/health", "/health/ready"}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and collect metrics."""
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        method = request.method
        status_code = "500"
        active_requests.inc()
        start_time = perf_counter()

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            endpoint = self._get_endpoint(request)
            request_latency_seconds.labels(endpoint=endpoint, method=method).observe(
                perf_counter() - start_time,
            )
            request_total.labels(endpoint=endpoint, method=method, status=status_code).inc()
            active_requests.dec()

    def _get_endpoint(self, request: Request) -> str:
        """Route pattern when matched (``/subscriptions/{subscription_id}``), else raw path."""
        route = request.scope.get("route")
        if route is not None:
            return route.path
        return request.url.path
