"""Bearer-token authentication dependencies."""

import logging
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.audit import audit_log, AuditAction, AuditSeverity
from civicconnect.core.exceptions import (
    AuthenticationException,
    AuthorizationException,
    ResourceNotFoundException,
)
from civicconnect.core.jwt import get_jwt_manager
from civicconnect.core.rbac import AuthContext
from civicconnect.core.security import mask_token
from civicconnect.db.session import get_db
from civicconnect.models.user import User, UserRole

logger = logging.getLogger("api.auth")


# Security scheme
bearer_scheme = HTTPBearer(auto_error=False, description="Token returned by /api/login")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def get_request_id(request: Request) -> str:
    """Get request ID from request state."""
    return getattr(request.state, "request_id", "unknown")


def _reject_token(request_id: str, client_ip: str, token: str, reason: str) -> AuthenticationException:
    audit_log.log(
        AuditAction.AUTH_TOKEN_REJECTED,
        severity=AuditSeverity.WARNING,
        request_id=request_id,
        client_ip=client_ip,
        details={"token": mask_token(token)},
        success=False,
        error_message=reason,
    )
    return AuthenticationException("Invalid token")


async def authenticate_request(
    request: Request,
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """
    Resolve the calling user from the ``Authorization: Bearer`` header.

    - no header, or not a bearer scheme -> 401
    - invalid, expired or tampered token -> 401
    - valid token whose user no longer exists -> 404

    The user row (and therefore the role) is loaded fresh on every call.
    """
    request_id = get_request_id(request)
    client_ip = get_client_ip(request)

    if bearer is None or not bearer.credentials:
        raise AuthenticationException("No token provided")

    token = bearer.credentials
    payload = get_jwt_manager().decode_token(token)
    if payload is None:
        raise _reject_token(request_id, client_ip, token, "Invalid or expired token")

    try:
        user_id = uuid.UUID(payload.sub)
    except ValueError:
        raise _reject_token(request_id, client_ip, token, "Malformed subject claim")

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"[{request_id}] Token for unknown user {user_id}")
        raise ResourceNotFoundException("User", str(user_id))

    return AuthContext(user=user, request_id=request_id, client_ip=client_ip)


def require_roles(*roles: UserRole):
    """
    Require one of the given roles.

    Usage:
        @router.post("/{report_id}/status")
        async def change_status(context: AuthContext = Depends(require_roles(UserRole.ADMIN))):
            ...
    """
    async def dependency(context: AuthContext = Depends(authenticate_request)) -> AuthContext:
        if context.role not in roles:
            logger.warning(
                f"Access denied for {context.user_id}: "
                f"required roles {[r.value for r in roles]}, has role {context.role.value}"
            )
            audit_log.log_access_denied(
                context.request_id,
                context.user_id,
                resource_type="endpoint",
                resource_id=None,
                reason="missing role",
            )
            raise AuthorizationException(
                f"Insufficient permissions. Required role: {' or '.join(r.value for r in roles)}"
            )
        return context

    return dependency
