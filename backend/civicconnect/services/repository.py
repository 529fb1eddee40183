"""Report queries under the authorization policy."""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from civicconnect.core.audit import audit_log
from civicconnect.core.exceptions import (
    AuthorizationException,
    ResourceNotFoundException,
    ValidationException,
)
from civicconnect.core.rbac import AuthContext, can_edit, ensure_can_view, is_owner, scope_query
from civicconnect.models.base import ensure_utc, utcnow
from civicconnect.models.report import Report, ReportCategory, ReportComment, ReportStatus
from civicconnect.schemas.common import Pagination
from civicconnect.schemas.report import ReportDetail, ReportOut

logger = logging.getLogger("api.reports")


@dataclass(frozen=True)
class ReportFilter:
    """Caller-supplied listing filters, already parsed."""

    status: Optional[ReportStatus] = None
    category: Optional[ReportCategory] = None
    owner_id: Optional[uuid.UUID] = None


def parse_report_id(raw_id: str) -> uuid.UUID:
    """Malformed ids are a 400, distinct from a 404 for ids that don't exist."""
    try:
        return uuid.UUID(str(raw_id))
    except (ValueError, AttributeError, TypeError):
        raise ValidationException("Invalid report ID format", field="id")


def parse_filters(
    status: Optional[str] = None,
    category: Optional[str] = None,
    user_id: Optional[str] = None,
) -> ReportFilter:
    """Turn raw query parameters into a filter, rejecting unknown values."""
    parsed_status = None
    if status:
        try:
            parsed_status = ReportStatus(status)
        except ValueError:
            raise ValidationException(
                "Invalid status filter",
                field="status",
                valid_values=[s.value for s in ReportStatus],
            )

    parsed_category = None
    if category:
        try:
            parsed_category = ReportCategory(category)
        except ValueError:
            raise ValidationException(
                "Invalid category filter",
                field="category",
                valid_values=[c.value for c in ReportCategory],
            )

    owner_id = None
    if user_id:
        try:
            owner_id = uuid.UUID(user_id)
        except ValueError:
            raise ValidationException("Invalid user ID format", field="userId")

    return ReportFilter(status=parsed_status, category=parsed_category, owner_id=owner_id)


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    """Paging metadata for a 1-indexed page of ``limit`` items."""
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_reports=total,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def elapsed_ms(created_at: datetime, now: Optional[datetime] = None) -> int:
    """Wall-clock milliseconds since ``created_at``."""
    now = now or utcnow()
    return int((now - ensure_utc(created_at)).total_seconds() * 1000)


class ReportRepository:
    """
    Reads reports with their owner, department, history and comment authors.

    Joins are always requested explicitly; the model relationships refuse to
    lazy-load.
    """

    @staticmethod
    def _with_joins(query):
        return query.options(
            selectinload(Report.owner),
            selectinload(Report.department),
            selectinload(Report.status_history),
            selectinload(Report.comments).selectinload(ReportComment.author),
        ).execution_options(populate_existing=True)

    async def find(
        self,
        db: AsyncSession,
        filters: ReportFilter,
        page: int,
        limit: int,
    ) -> Tuple[List[Report], int]:
        """
        One page of reports, newest first, plus the total match count.

        ``filters.owner_id`` must already be scoped by the caller's role.
        """
        conditions = []
        if filters.owner_id is not None:
            conditions.append(Report.user_id == filters.owner_id)
        if filters.status is not None:
            conditions.append(Report.status == filters.status)
        if filters.category is not None:
            conditions.append(Report.category == filters.category)

        count_result = await db.execute(select(func.count(Report.id)).where(*conditions))
        total = int(count_result.scalar_one())

        offset = (page - 1) * limit
        if offset >= total:
            return [], total

        query = (
            select(Report)
            .where(*conditions)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(self._with_joins(query))
        reports = list(result.scalars().unique().all())

        return reports, total

    async def find_by_id(self, db: AsyncSession, report_id: uuid.UUID) -> Report:
        """Load one report with its joins, 404 when absent."""
        result = await db.execute(self._with_joins(select(Report).where(Report.id == report_id)))
        report = result.scalar_one_or_none()
        if report is None:
            raise ResourceNotFoundException("Report", str(report_id))
        return report

    async def list_for_user(
        self,
        db: AsyncSession,
        context: AuthContext,
        filters: ReportFilter,
        page: int,
        limit: int,
    ) -> Tuple[List[ReportOut], Pagination]:
        """Listing restricted to what the caller may see; never a 403."""
        scope = scope_query(context.user, filters.owner_id)
        scoped = ReportFilter(status=filters.status, category=filters.category, owner_id=scope.owner_id)

        reports, total = await self.find(db, scoped, page, limit)
        logger.debug(
            f"[{context.request_id}] {len(reports)}/{total} reports for {context.user_id} "
            f"(page {page}, limit {limit})"
        )
        return [ReportOut.from_report(r) for r in reports], build_pagination(page, limit, total)

    async def get_for_user(
        self,
        db: AsyncSession,
        context: AuthContext,
        raw_id: str,
    ) -> ReportDetail:
        """
        Single report for the caller, enriched with request-specific fields.

        400 for a malformed id, 404 when missing, 403 when not visible.
        """
        report = await self.find_by_id(db, parse_report_id(raw_id))

        try:
            ensure_can_view(context.user, report)
        except AuthorizationException:
            audit_log.log_access_denied(
                context.request_id,
                context.user_id,
                resource_type="report",
                resource_id=report.id,
                reason="not owner",
            )
            raise

        return ReportDetail.from_report(
            report,
            time_since_submission=elapsed_ms(report.created_at),
            can_edit=can_edit(context.user, report),
            is_own_report=is_owner(context.user, report),
        )
