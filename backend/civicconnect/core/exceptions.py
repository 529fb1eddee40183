"""Centralized exception handling with sanitized error responses."""

import logging
import traceback
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from civicconnect.config import settings

logger = logging.getLogger("api.errors")


# =============================================================================
# Custom Exception Classes
# =============================================================================

class APIException(Exception):
    """Base exception for API errors with safe messages."""

    def __init__(
        self,
        status_code: int = 500,
        detail: str = "An error occurred",
        error_code: Optional[str] = None,
        internal_message: Optional[str] = None,
    ):
        self.status_code = status_code
        self.detail = detail  # Safe message for client
        self.error_code = error_code or "INTERNAL_ERROR"
        self.internal_message = internal_message  # Full message for logs
        super().__init__(self.detail)

    def extra_fields(self) -> Dict[str, Any]:
        """Fields added to the error body besides code and message."""
        return {}


class ValidationException(APIException):
    """Malformed, missing or out-of-range input."""

    def __init__(
        self,
        detail: str,
        field: Optional[str] = None,
        valid_values: Optional[List[str]] = None,
    ):
        super().__init__(
            status_code=400,
            detail=detail,
            error_code="VALIDATION_ERROR",
        )
        self.field = field
        self.valid_values = valid_values

    def extra_fields(self) -> Dict[str, Any]:
        extra: Dict[str, Any] = {}
        if self.field:
            extra["field"] = self.field
        if self.valid_values is not None:
            extra["valid_values"] = list(self.valid_values)
        return extra


class InvalidCredentialsException(APIException):
    """Login with an unknown email or a wrong password."""

    def __init__(self):
        super().__init__(
            status_code=400,
            detail="Invalid email or password",
            error_code="INVALID_CREDENTIALS",
        )


class AuthenticationException(APIException):
    """Authentication failure."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=401,
            detail=detail,
            error_code="AUTHENTICATION_REQUIRED",
        )


class AuthorizationException(APIException):
    """Authorization/permission failure."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=403,
            detail=detail,
            error_code="PERMISSION_DENIED",
        )


class ResourceNotFoundException(APIException):
    """Resource not found."""

    def __init__(self, resource: str = "Resource", resource_id: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=f"{resource} not found",
            error_code="NOT_FOUND",
            internal_message=f"{resource} id={resource_id}" if resource_id else None,
        )


class ConflictException(APIException):
    """Concurrent modification detected on an append."""

    def __init__(self, detail: str = "The report was modified concurrently. Please retry."):
        super().__init__(
            status_code=409,
            detail=detail,
            error_code="CONFLICT",
        )


class ServiceUnavailableException(APIException):
    """External collaborator failed or is not configured."""

    def __init__(
        self,
        service: str = "Service",
        status_code: int = 503,
        internal_message: Optional[str] = None,
    ):
        super().__init__(
            status_code=status_code,
            detail=f"{service} temporarily unavailable. Please try again later.",
            error_code="BAD_GATEWAY" if status_code == 502 else "SERVICE_UNAVAILABLE",
            internal_message=internal_message or f"{service} is unavailable",
        )
        self.service = service


class InternalServerException(APIException):
    """Unexpected failure whose (sanitized) cause is reported to the caller."""

    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        cause_text = str(cause) if cause is not None else None
        super().__init__(
            status_code=500,
            detail=detail,
            error_code="INTERNAL_ERROR",
            internal_message=f"{type(cause).__name__}: {cause_text}" if cause is not None else None,
        )
        self.cause = sanitize_error_message(cause_text) if cause_text else None

    def extra_fields(self) -> Dict[str, Any]:
        if self.cause:
            return {"details": {"cause": self.cause}}
        return {}


# =============================================================================
# Error Response Formatting
# =============================================================================

def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    request_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create a standardized error response."""
    response = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if request_id:
        response["error"]["request_id"] = request_id

    if details and not settings.is_production():
        # Only include details in non-production
        response["error"]["details"] = details

    return response


def sanitize_error_message(message: str) -> str:
    """
    Sanitize error message to remove sensitive information.

    Removes:
    - File paths
    - SQL queries
    - Stack traces
    - Credentials
    """
    sensitive_patterns = [
        "/app/",
        "/usr/",
        "/home/",
        "Traceback",
        "File \"",
        "SELECT ",
        "INSERT ",
        "UPDATE ",
        "DELETE ",
        "postgresql",
        "asyncpg",
        "sqlite",
        "sqlalchemy",
        "password",
        "secret",
        "token",
        "api_key",
        "key=",
    ]

    message_lower = message.lower()
    for pattern in sensitive_patterns:
        if pattern.lower() in message_lower:
            return "An internal error occurred. Please try again later."

    # Limit message length
    if len(message) > 200:
        return message[:200] + "..."

    return message


# =============================================================================
# Exception Handlers
# =============================================================================

def get_request_id(request: Request) -> str:
    """Get request ID from request state or generate new one."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return str(uuid4())[:8]


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle custom API exceptions."""
    request_id = get_request_id(request)

    log_message = f"[{request_id}] {exc.error_code}: {exc.detail}"
    if exc.internal_message:
        log_message += f" | Internal: {exc.internal_message}"

    if exc.status_code >= 500:
        logger.error(log_message)
    else:
        logger.warning(log_message)

    response = create_error_response(
        status_code=exc.status_code,
        error_code=exc.error_code,
        message=exc.detail,
        request_id=request_id,
    )
    response["error"].update(exc.extra_fields())

    headers = {}
    if isinstance(exc, AuthenticationException):
        headers["WWW-Authenticate"] = "Bearer"

    return JSONResponse(
        status_code=exc.status_code,
        content=response,
        headers=headers,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Handle standard HTTP exceptions with sanitization."""
    request_id = get_request_id(request)

    error_code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        413: "PAYLOAD_TOO_LARGE",
        415: "UNSUPPORTED_MEDIA_TYPE",
        500: "INTERNAL_ERROR",
        502: "BAD_GATEWAY",
        503: "SERVICE_UNAVAILABLE",
    }

    error_code = error_code_map.get(exc.status_code, "ERROR")

    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code >= 500:
        detail = sanitize_error_message(detail)

    if exc.status_code >= 500:
        logger.error(f"[{request_id}] HTTP {exc.status_code}: {exc.detail}")
    else:
        logger.info(f"[{request_id}] HTTP {exc.status_code}: {detail}")

    response = create_error_response(
        status_code=exc.status_code,
        error_code=error_code,
        message=detail,
        request_id=request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=response)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Turn request schema failures into 400 validation errors."""
    request_id = get_request_id(request)

    field_errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        msg = error["msg"]

        if "value_error" in str(error.get("type", "")):
            msg = "Invalid value provided"

        field_errors.append({
            "field": field,
            "message": msg,
        })

    logger.info(f"[{request_id}] Validation error: {len(field_errors)} field(s)")

    if len(field_errors) == 1 and field_errors[0]["field"]:
        message = f"Invalid request data: {field_errors[0]['field']}"
    else:
        message = "Invalid request data"

    response = create_error_response(
        status_code=400,
        error_code="VALIDATION_ERROR",
        message=message,
        request_id=request_id,
        details={"fields": field_errors},
    )

    return JSONResponse(status_code=400, content=response)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with full sanitization."""
    request_id = get_request_id(request)

    logger.error(
        f"[{request_id}] Unhandled exception: {type(exc).__name__}: {str(exc)}"
    )
    if settings.debug:
        logger.error(traceback.format_exc())

    response = create_error_response(
        status_code=500,
        error_code="INTERNAL_ERROR",
        message="An unexpected error occurred. Please try again later.",
        request_id=request_id,
    )

    return JSONResponse(status_code=500, content=response)


# =============================================================================
# Register Exception Handlers
# =============================================================================

def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
