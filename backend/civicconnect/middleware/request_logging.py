"""Request logging middleware for audit trail and debugging."""

import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from civicconnect.config import settings
from civicconnect.core.security import mask_token


# Configure logger
logger = logging.getLogger("api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs all incoming requests and outgoing responses.

    Features:
    - Unique request ID for tracing, echoed as ``X-Request-ID``
    - Request duration tracking
    - Bearer tokens masked in header dumps
    - Log level chosen by status code
    """

    # Headers that should be masked in logs
    SENSITIVE_HEADERS = {
        "authorization",
        "cookie",
        "set-cookie",
    }

    # Paths with reduced logging (health checks, etc.)
    QUIET_PATHS = {"/health", "/api/health", "/api/health/db"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate unique request ID; handlers and error bodies read it from state
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        if not settings.log_requests:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        # Record start time
        start_time = time.time()

        # Extract request info
        client_ip = self._get_client_ip(request)
        method = request.method
        path = request.url.path
        query = str(request.url.query) if request.url.query else ""

        is_quiet_path = path in self.QUIET_PATHS

        if not is_quiet_path:
            logger.info(
                f"[{request_id}] --> {method} {path}"
                f"{('?' + query) if query else ''} "
                f"from {client_ip}"
            )
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"[{request_id}] headers: {self._mask_headers(dict(request.headers))}")

        response: Optional[Response] = None
        error = None
        try:
            response = await call_next(request)
            return response
        except Exception as e:
            error = str(e)
            raise
        finally:
            duration_ms = (time.time() - start_time) * 1000
            status_code = response.status_code if response is not None else 500

            if response is not None:
                response.headers["X-Request-ID"] = request_id

            log_message = (
                f"[{request_id}] <-- {status_code} "
                f"{method} {path} "
                f"({duration_ms:.2f}ms)"
            )

            if error:
                log_message += f" ERROR: {error}"

            # Choose log level based on status code
            if status_code >= 500:
                logger.error(log_message)
            elif status_code >= 400:
                logger.warning(log_message)
            elif not is_quiet_path:
                logger.info(log_message)
            else:
                logger.debug(log_message)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP from request, handling proxies."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"

    def _mask_headers(self, headers: dict) -> dict:
        """Mask sensitive header values for logging."""
        masked = {}
        for key, value in headers.items():
            if key.lower() in self.SENSITIVE_HEADERS:
                if key.lower() == "authorization" and value.lower().startswith("bearer "):
                    masked[key] = f"Bearer {mask_token(value[7:])}"
                else:
                    masked[key] = "****"
            else:
                masked[key] = value
        return masked


def setup_logging():
    """Configure logging for the application."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Set specific logger levels
    logging.getLogger("api.requests").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
