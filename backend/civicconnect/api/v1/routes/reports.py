"""Civic issue report endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.api.deps import get_pipeline, get_repository
from civicconnect.config import settings
from civicconnect.core.audit import audit_log, AuditAction
from civicconnect.core.auth import authenticate_request, require_roles
from civicconnect.core.rbac import AuthContext, ensure_can_edit
from civicconnect.db.session import get_db
from civicconnect.models.user import UserRole
from civicconnect.schemas.report import (
    CommentCreateRequest,
    ReportCreate,
    ReportCreatedResponse,
    ReportDetailResponse,
    ReportFilters,
    ReportListResponse,
    ReportOut,
    StatusUpdateRequest,
)
from civicconnect.services import lifecycle
from civicconnect.services.ingestion import IngestionPipeline
from civicconnect.services.repository import ReportRepository, parse_filters, parse_report_id

logger = logging.getLogger("api.reports")
router = APIRouter()


@router.post("", response_model=ReportCreatedResponse, status_code=201)
async def submit_report(
    body: ReportCreate,
    context: AuthContext = Depends(authenticate_request),
    db: AsyncSession = Depends(get_db),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> ReportCreatedResponse:
    """
    Submit a new report.

    The report starts in ``Submitted`` with a single system history entry.
    The category must be one of the values listed by ``/api/categories``.
    """
    report = await pipeline.submit(db, context.user, body)

    audit_log.log_report_event(
        AuditAction.REPORT_SUBMIT,
        context.request_id,
        context.user_id,
        report.id,
        details={"category": report.category.value, "severity": report.severity.value},
    )
    return ReportCreatedResponse(message="Report submitted successfully", report=report)


@router.get("", response_model=ReportListResponse)
async def list_reports(
    status: Optional[str] = Query(None, description="Filter by status"),
    category: Optional[str] = Query(None, description="Filter by category"),
    user_id: Optional[str] = Query(None, alias="userId", description="Owner filter, admins only"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    context: AuthContext = Depends(authenticate_request),
    db: AsyncSession = Depends(get_db),
    repository: ReportRepository = Depends(get_repository),
) -> ReportListResponse:
    """
    List reports, newest first.

    Citizens only ever see their own reports; a ``userId`` they pass is
    ignored. Admins see everything and may filter by owner.
    """
    filters = parse_filters(status=status, category=category, user_id=user_id)
    reports, pagination = await repository.list_for_user(db, context, filters, page, limit)

    return ReportListResponse(
        reports=reports,
        pagination=pagination,
        filters=ReportFilters(status=status, category=category, user_id=user_id),
    )


@router.get("/{report_id}", response_model=ReportDetailResponse)
async def get_report(
    report_id: str,
    context: AuthContext = Depends(authenticate_request),
    db: AsyncSession = Depends(get_db),
    repository: ReportRepository = Depends(get_repository),
) -> ReportDetailResponse:
    """Fetch one report. Citizens get a 403 for reports they don't own."""
    report = await repository.get_for_user(db, context, report_id)

    audit_log.log_report_event(AuditAction.REPORT_VIEW, context.request_id, context.user_id, report.id)
    return ReportDetailResponse(report=report)


@router.post("/{report_id}/status", response_model=ReportCreatedResponse)
async def change_status(
    report_id: str,
    body: StatusUpdateRequest,
    context: AuthContext = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
    repository: ReportRepository = Depends(get_repository),
) -> ReportCreatedResponse:
    """Move a report to a new status, recording who did it. Admins only."""
    report = await repository.find_by_id(db, parse_report_id(report_id))
    previous = report.status

    entry = await lifecycle.append_status(
        db,
        report,
        body.status,
        actor=str(context.user_id),
        comment=body.comment,
        strict=settings.strict_status_transitions,
    )
    await lifecycle.commit(db, "Failed to update report status")

    audit_log.log_report_event(
        AuditAction.REPORT_STATUS_CHANGE,
        context.request_id,
        context.user_id,
        report.id,
        details={"from": previous.value, "to": entry.status.value},
    )

    updated = await repository.find_by_id(db, report.id)
    return ReportCreatedResponse(message="Report status updated", report=ReportOut.from_report(updated))


@router.post("/{report_id}/comments", response_model=ReportCreatedResponse, status_code=201)
async def add_comment(
    report_id: str,
    body: CommentCreateRequest,
    context: AuthContext = Depends(authenticate_request),
    db: AsyncSession = Depends(get_db),
    repository: ReportRepository = Depends(get_repository),
) -> ReportCreatedResponse:
    """Comment on a report. Owners and admins only."""
    report = await repository.find_by_id(db, parse_report_id(report_id))
    ensure_can_edit(context.user, report)

    await lifecycle.append_comment(db, report, context.user_id, body.text)
    await lifecycle.commit(db, "Failed to add comment")

    audit_log.log_report_event(AuditAction.REPORT_COMMENT, context.request_id, context.user_id, report.id)

    updated = await repository.find_by_id(db, report.id)
    return ReportCreatedResponse(message="Comment added", report=ReportOut.from_report(updated))
