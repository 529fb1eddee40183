"""Response hardening headers for the CivicConnect API and its photo store."""

from typing import Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from civicconnect.config import settings

MEDIA_PREFIX = "/media/"
DOCS_PATHS = frozenset({"/docs", "/redoc", "/openapi.json"})

# Public, identical for every caller
CACHEABLE_PATHS = frozenset({"/health", "/api/categories"}) | DOCS_PATHS

MEDIA_CACHE_SECONDS = 86400

BASE_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=(), usb=()",
}

API_CSP = "default-src 'none'; frame-ancestors 'none'"

# Swagger UI and ReDoc load their bundles from jsdelivr
DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "img-src 'self' data: https://fastapi.tiangolo.com; "
    "font-src 'self' https://cdn.jsdelivr.net; "
    "connect-src 'self' https://cdn.jsdelivr.net; "
    "frame-ancestors 'none'"
)

# A stored photo is only ever rendered as an image, never as a document
MEDIA_CSP = "default-src 'none'; img-src 'self'; sandbox"

NO_STORE = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}


def is_media_path(path: str) -> bool:
    return path.startswith(MEDIA_PREFIX)


def content_security_policy(path: str) -> str:
    if is_media_path(path):
        return MEDIA_CSP
    if path in DOCS_PATHS:
        return DOCS_CSP
    return API_CSP


def cache_headers(request: Request) -> Dict[str, str]:
    """
    Caching rules, checked in order.

    Anything sent with a bearer token or that changes state is never stored.
    Uploaded photos have random, never-reused names and may be cached by
    anyone. The category list, docs and health check are public.
    Everything else (report listings, profiles) is private and uncached.
    """
    if request.headers.get("Authorization") or request.method in ("POST", "PUT", "PATCH", "DELETE"):
        return NO_STORE
    if is_media_path(request.url.path):
        return {"Cache-Control": f"public, max-age={MEDIA_CACHE_SECONDS}, immutable"}
    if request.url.path in CACHEABLE_PATHS:
        return {}
    return NO_STORE


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every response.

    Photos under ``/media/`` are embedded by the web and mobile clients, so
    they get a cross-origin resource policy and a long public cache lifetime
    while still being sandboxed. API responses are same-origin only.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        path = request.url.path

        response.headers.update(BASE_HEADERS)
        response.headers["Content-Security-Policy"] = content_security_policy(path)
        response.headers["Cross-Origin-Resource-Policy"] = (
            "cross-origin" if is_media_path(path) else "same-origin"
        )

        if settings.is_production():
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

        response.headers.update(cache_headers(request))
        return response
