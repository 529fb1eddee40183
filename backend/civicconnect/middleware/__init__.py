"""Middleware modules for security and request processing."""

from civicconnect.middleware.security_headers import SecurityHeadersMiddleware
from civicconnect.middleware.request_logging import RequestLoggingMiddleware, setup_logging

__all__ = [
    "SecurityHeadersMiddleware",
    "RequestLoggingMiddleware",
    "setup_logging",
]
