"""
Request logging and HTTP metrics middleware.

Every request gets a correlation ID (taken from ``X-Correlation-ID`` when the
caller supplies one) that is bound to the structlog context for the
duration of the request and echoed back on the response.
"""

import time
import uuid

import structlog
from fastapi import Request
from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

from shared.logging import bind_request_context, clear_request_context

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# ============================================================================
# Prometheus Metrics
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"]
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method"]
)


def _endpoint_label(request: Request) -> str:
    # Route template keeps /favorites/{place_id:path} to a single series.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging, metrics and correlation IDs."""

    async def dispatch(self, request: Request, call_next):
        """Process request and log details."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        bind_request_context(correlation_id)

        http_requests_in_progress.labels(method=method).inc()
        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            endpoint = _endpoint_label(request)

            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()
            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration=f"{duration:.3f}s"
            )

            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{duration:.3f}s",
                exc_info=True
            )
            raise

        finally:
            http_requests_in_progress.labels(method=method).dec()
            clear_request_context()
