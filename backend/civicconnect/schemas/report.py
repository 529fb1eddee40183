"""Report request and response schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from civicconnect.models.base import ensure_utc
from civicconnect.models.report import (
    Report,
    ReportCategory,
    ReportComment,
    ReportSeverity,
    ReportStatus,
    StatusHistoryEntry,
)
from civicconnect.models.user import Department, User
from civicconnect.schemas.common import Coordinate, Pagination, RequestModel, ResponseModel


# =============================================================================
# Requests
# =============================================================================

class ReportLocation(Coordinate):
    """Where the issue is, with a human-readable address."""

    address: str = Field(..., description="Human-readable address")


class ReportCreate(RequestModel):
    """Body of a report submission."""

    description: str
    location: ReportLocation
    images: List[str] = Field(..., description="URLs returned by /upload")
    category: str = Field(..., description="One of the values listed by /api/categories")
    severity: Optional[str] = Field(None, description="Low, Medium or High; defaults to Medium")


class StatusUpdateRequest(RequestModel):
    """Append a status change to a report's history."""

    status: str
    comment: Optional[str] = Field(None, max_length=2000)


class CommentCreateRequest(RequestModel):
    """Append a comment to a report."""

    text: str = Field(..., max_length=2000)


class CategorySuggestRequest(RequestModel):
    """Free text to classify with the keyword rules."""

    description: str = Field(..., max_length=5000)


# =============================================================================
# Responses
# =============================================================================

class UserSummary(ResponseModel):
    id: UUID
    name: str
    email: str
    role: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role.value)


class DepartmentSummary(ResponseModel):
    id: UUID
    name: str
    description: Optional[str] = None


class LocationOut(ResponseModel):
    lat: float
    lng: float
    address: str


class StatusHistoryOut(ResponseModel):
    status: ReportStatus
    timestamp: datetime
    by: str
    comment: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: StatusHistoryEntry) -> "StatusHistoryOut":
        return cls(
            status=entry.status,
            timestamp=ensure_utc(entry.timestamp),
            by=entry.actor,
            comment=entry.comment,
        )


class CommentOut(ResponseModel):
    by: UserSummary
    text: str
    timestamp: datetime

    @classmethod
    def from_comment(cls, comment: ReportComment) -> "CommentOut":
        return cls(
            by=UserSummary.from_user(comment.author),
            text=comment.text,
            timestamp=ensure_utc(comment.timestamp),
        )


class ReportOut(ResponseModel):
    """Report joined with its owner, department and trails."""

    id: UUID
    user: UserSummary
    description: str
    location: LocationOut
    images: List[str]
    category: ReportCategory
    severity: ReportSeverity
    status: ReportStatus
    status_history: List[StatusHistoryOut]
    comments: List[CommentOut]
    department: Optional[DepartmentSummary] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_report(cls, report: Report, **extra) -> "ReportOut":
        """Build the projection from a report whose joins were loaded."""
        department: Optional[Department] = report.department
        return cls(
            id=report.id,
            user=UserSummary.from_user(report.owner),
            description=report.description,
            location=LocationOut(lat=report.latitude, lng=report.longitude, address=report.address),
            images=list(report.images),
            category=report.category,
            severity=report.severity,
            status=report.status,
            status_history=[StatusHistoryOut.from_entry(e) for e in report.status_history],
            comments=[CommentOut.from_comment(c) for c in report.comments],
            department=DepartmentSummary.model_validate(department) if department else None,
            created_at=ensure_utc(report.created_at),
            updated_at=ensure_utc(report.updated_at),
            **extra,
        )


class ReportDetail(ReportOut):
    """Single-report view with request-specific fields (never stored)."""

    time_since_submission: int = Field(..., description="Milliseconds since the report was created")
    can_edit: bool
    is_own_report: bool


class ReportFilters(ResponseModel):
    status: Optional[str] = None
    category: Optional[str] = None
    user_id: Optional[str] = None


class ReportListResponse(ResponseModel):
    reports: List[ReportOut]
    pagination: Pagination
    filters: ReportFilters


class ReportCreatedResponse(ResponseModel):
    message: str
    report: ReportOut


class ReportDetailResponse(ResponseModel):
    report: ReportDetail


class CategoryListResponse(ResponseModel):
    categories: List[str]


class CategorySuggestion(ResponseModel):
    category: ReportCategory
