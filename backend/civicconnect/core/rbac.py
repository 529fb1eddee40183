"""Role-based authorization policy for reports.

Two enforcement points exist and both are needed:

- direct lookups (``ensure_can_view``) refuse with a 403 when the caller
  may not see the report;
- list lookups (``scope_query``) never refuse, they narrow the query to
  what the caller may see.

Decisions are recomputed for every request from the freshly loaded user.
"""

import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from civicconnect.core.exceptions import AuthorizationException
from civicconnect.models.user import User, UserRole

logger = logging.getLogger("api.rbac")


# =============================================================================
# Authorization Context
# =============================================================================

class AuthContext(BaseModel):
    """Authenticated caller for a single request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user: User
    request_id: Optional[str] = None
    client_ip: Optional[str] = None

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    @property
    def role(self) -> UserRole:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return is_admin(self.user)


class ReportScope(BaseModel):
    """Owner restriction applied to report list queries."""

    owner_id: Optional[uuid.UUID] = None

    @property
    def is_restricted(self) -> bool:
        return self.owner_id is not None


# =============================================================================
# Policy
# =============================================================================

def is_admin(user: Any) -> bool:
    """Check whether a user holds the admin role."""
    return user.role == UserRole.ADMIN


def is_owner(user: Any, report: Any) -> bool:
    """Check whether the user created the report."""
    return report.user_id == user.id


def can_view(user: Any, report: Any) -> bool:
    """Admins see everything; citizens only their own reports."""
    return is_admin(user) or is_owner(user, report)


def can_edit(user: Any, report: Any) -> bool:
    """Same rule as viewing: admins or the owning citizen."""
    return is_admin(user) or is_owner(user, report)


def scope_query(user: Any, requested_owner_id: Optional[uuid.UUID] = None) -> ReportScope:
    """
    Build the owner filter for a report listing.

    Admins may narrow the listing to a chosen owner. Citizens are always
    pinned to themselves and any owner they ask for is ignored.
    """
    if is_admin(user):
        return ReportScope(owner_id=requested_owner_id)

    if requested_owner_id is not None and requested_owner_id != user.id:
        logger.info(f"Ignoring owner filter {requested_owner_id} requested by citizen {user.id}")

    return ReportScope(owner_id=user.id)


def ensure_can_view(user: Any, report: Any) -> None:
    """Raise a 403 when the user may not read the report."""
    if not can_view(user, report):
        raise AuthorizationException("Access denied. You can only view your own reports.")


def ensure_can_edit(user: Any, report: Any) -> None:
    """Raise a 403 when the user may not modify the report."""
    if not can_edit(user, report):
        raise AuthorizationException("Access denied. You can only modify your own reports.")


def ensure_admin(user: Any) -> None:
    """Raise a 403 unless the user is municipal staff."""
    if not is_admin(user):
        raise AuthorizationException("Insufficient permissions. Required role: admin")
