"""Audit logging for security-critical operations."""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger("api.audit")


class AuditAction(str, Enum):
    """Audit action types."""

    # Authentication
    AUTH_REGISTER = "auth.register"
    AUTH_LOGIN = "auth.login"
    AUTH_LOGIN_FAILURE = "auth.login_failure"
    AUTH_TOKEN_REJECTED = "auth.token_rejected"

    # Reports
    REPORT_SUBMIT = "report.submit"
    REPORT_VIEW = "report.view"
    REPORT_STATUS_CHANGE = "report.status_change"
    REPORT_COMMENT = "report.comment"

    # Collaborators
    IMAGE_UPLOAD = "image.upload"
    AI_CLASSIFY = "ai.classify"

    # Security Events
    ACCESS_DENIED = "security.access_denied"


class AuditSeverity(str, Enum):
    """Audit event severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEntry(BaseModel):
    """Audit log entry structure."""

    timestamp: datetime
    action: AuditAction
    severity: AuditSeverity
    request_id: Optional[str] = None
    client_ip: Optional[str] = None
    actor_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    success: bool = True
    error_message: Optional[str] = None


class AuditLogger:
    """
    Structured audit log written to the ``api.audit`` logger.

    Entries are single JSON lines so they can be shipped and queried
    separately from request logs.
    """

    def __init__(self):
        self._logger = logging.getLogger("api.audit")
        self._logger.setLevel(logging.INFO)

    def _format_entry(self, entry: AuditEntry) -> str:
        """Format audit entry as JSON for structured logging."""
        return json.dumps(entry.model_dump(mode="json", exclude_none=True), default=str)

    def log(
        self,
        action: AuditAction,
        *,
        severity: AuditSeverity = AuditSeverity.INFO,
        request_id: Optional[str] = None,
        client_ip: Optional[str] = None,
        actor_id: Optional[Any] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Log an audit event.

        Args:
            action: The action being audited
            severity: Event severity level
            request_id: Unique request identifier
            client_ip: Client IP address
            actor_id: User performing the action
            resource_type: Type of resource accessed
            resource_id: ID of resource accessed
            details: Additional context (never credentials)
            success: Whether the action succeeded
            error_message: Error message if failed
        """
        entry = AuditEntry(
            timestamp=datetime.now(timezone.utc),
            action=action,
            severity=severity,
            request_id=request_id,
            client_ip=client_ip,
            actor_id=str(actor_id) if actor_id is not None else None,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=details,
            success=success,
            error_message=error_message,
        )

        log_message = self._format_entry(entry)

        if severity == AuditSeverity.ERROR:
            self._logger.error(f"AUDIT: {log_message}")
        elif severity == AuditSeverity.WARNING:
            self._logger.warning(f"AUDIT: {log_message}")
        else:
            self._logger.info(f"AUDIT: {log_message}")

    def log_login_failure(
        self,
        request_id: Optional[str],
        client_ip: Optional[str],
        email: str,
    ) -> None:
        """Log failed login attempt."""
        from civicconnect.core.security import mask_email

        self.log(
            AuditAction.AUTH_LOGIN_FAILURE,
            severity=AuditSeverity.WARNING,
            request_id=request_id,
            client_ip=client_ip,
            details={"email": mask_email(email)},
            success=False,
            error_message="Invalid email or password",
        )

    def log_access_denied(
        self,
        request_id: Optional[str],
        actor_id: Any,
        resource_type: str,
        resource_id: Any,
        reason: str,
    ) -> None:
        """Log an authenticated request refused by the authorization policy."""
        self.log(
            AuditAction.ACCESS_DENIED,
            severity=AuditSeverity.WARNING,
            request_id=request_id,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            success=False,
            error_message=reason,
        )

    def log_report_event(
        self,
        action: AuditAction,
        request_id: Optional[str],
        actor_id: Any,
        report_id: Any,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log a read or write on a report."""
        self.log(
            action,
            request_id=request_id,
            actor_id=actor_id,
            resource_type="report",
            resource_id=report_id,
            details=details,
        )


# Global audit logger instance
audit_log = AuditLogger()
