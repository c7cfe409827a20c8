"""FastAPI middleware components.

This package contains custom middleware for request/response logging,
HTTP metrics, correlation IDs and security headers.
"""

from api.src.middleware.request_logging import RequestLoggingMiddleware
from api.src.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
