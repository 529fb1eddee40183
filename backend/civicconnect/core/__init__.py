"""Core security, authentication, and authorization modules."""

# Exception handling
from civicconnect.core.exceptions import (
    APIException,
    ValidationException,
    InvalidCredentialsException,
    AuthenticationException,
    AuthorizationException,
    ResourceNotFoundException,
    ConflictException,
    ServiceUnavailableException,
    InternalServerException,
    register_exception_handlers,
    sanitize_error_message,
)

# Audit logging
from civicconnect.core.audit import (
    AuditAction,
    AuditSeverity,
    AuditLogger,
    audit_log,
)

# Authorization policy
from civicconnect.core.rbac import (
    AuthContext,
    ReportScope,
    can_view,
    can_edit,
    scope_query,
    ensure_can_view,
    ensure_can_edit,
    ensure_admin,
)

__all__ = [
    # Exceptions
    "APIException",
    "ValidationException",
    "InvalidCredentialsException",
    "AuthenticationException",
    "AuthorizationException",
    "ResourceNotFoundException",
    "ConflictException",
    "ServiceUnavailableException",
    "InternalServerException",
    "register_exception_handlers",
    "sanitize_error_message",
    # Audit
    "AuditAction",
    "AuditSeverity",
    "AuditLogger",
    "audit_log",
    # Policy
    "AuthContext",
    "ReportScope",
    "can_view",
    "can_edit",
    "scope_query",
    "ensure_can_view",
    "ensure_can_edit",
    "ensure_admin",
]
