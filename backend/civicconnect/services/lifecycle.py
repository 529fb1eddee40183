"""Report lifecycle: submission, status trail and comments.

History and comments are append-only. Every append writes a new row at the
next position and bumps the report's version counter in the same flush, so
two writers racing on one report cannot silently overwrite each other: the
loser gets a ``ConflictException``.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Type, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from civicconnect.core.exceptions import (
    ConflictException,
    InternalServerException,
    ValidationException,
)
from civicconnect.models.base import utcnow
from civicconnect.models.report import (
    Report,
    ReportCategory,
    ReportComment,
    ReportSeverity,
    ReportStatus,
    StatusHistoryEntry,
)
from civicconnect.schemas.report import ReportCreate
from civicconnect.services.classifier import normalize_severity, parse_category, valid_categories

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"
SUBMISSION_COMMENT = "Report submitted by user"

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)

# Only consulted when strict transitions are enabled.
ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
    ReportStatus.SUBMITTED: [ReportStatus.ACKNOWLEDGED],
    ReportStatus.ACKNOWLEDGED: [ReportStatus.IN_PROGRESS],
    ReportStatus.IN_PROGRESS: [ReportStatus.RESOLVED, ReportStatus.CLOSED],
    ReportStatus.RESOLVED: [ReportStatus.CLOSED],
    ReportStatus.CLOSED: [],
}


@dataclass(frozen=True)
class ReportSubmission:
    """A submission that passed validation; every field is normalized."""

    description: str
    latitude: float
    longitude: float
    address: str
    images: List[str]
    category: ReportCategory
    severity: ReportSeverity


# =============================================================================
# Validation
# =============================================================================

def check_range(value: float, bounds: tuple, name: str, field: str) -> float:
    low, high = bounds
    if not math.isfinite(value) or value < low or value > high:
        raise ValidationException(
            f"{name} must be between {low:g} and {high:g}",
            field=field,
        )
    return float(value)


def validate_submission(payload: ReportCreate) -> ReportSubmission:
    """
    Check and normalize a submission before anything is written.

    Fails fast on the first problem found.
    """
    description = payload.description.strip()
    category_raw = payload.category.strip()
    if not description or not category_raw:
        raise ValidationException(
            "Description, location, images, and category are required",
            field="description" if not description else "category",
        )

    address = payload.location.address.strip()
    if not address:
        raise ValidationException(
            "Location must include lat, lng, and address",
            field="location.address",
        )

    images = [url.strip() for url in payload.images]
    if not images:
        raise ValidationException("At least one image is required", field="images")
    if any(not url for url in images):
        raise ValidationException("Image URLs must not be empty", field="images")

    latitude = check_range(payload.location.lat, LATITUDE_RANGE, "Latitude", "location.lat")
    longitude = check_range(payload.location.lng, LONGITUDE_RANGE, "Longitude", "location.lng")

    category = parse_category(category_raw)
    if category is None:
        raise ValidationException(
            "Invalid category",
            field="category",
            valid_values=valid_categories(),
        )

    return ReportSubmission(
        description=description,
        latitude=latitude,
        longitude=longitude,
        address=address,
        images=images,
        category=category,
        severity=normalize_severity(payload.severity),
    )


def parse_status(value: str) -> ReportStatus:
    """Strict status lookup, 400 with the valid statuses otherwise."""
    try:
        return ReportStatus(value.strip())
    except ValueError:
        raise ValidationException(
            "Invalid status",
            field="status",
            valid_values=[s.value for s in ReportStatus],
        )


def check_transition(current: ReportStatus, new: ReportStatus) -> None:
    """Enforce the workflow order. Only used in strict mode."""
    allowed = ALLOWED_TRANSITIONS.get(current, [])
    if new not in allowed:
        raise ValidationException(
            f"Cannot change status from {current.value} to {new.value}",
            field="status",
            valid_values=[s.value for s in allowed],
        )


# =============================================================================
# Writes
# =============================================================================

async def submit(
    db: AsyncSession,
    owner_id: uuid.UUID,
    submission: ReportSubmission,
    now: Optional[datetime] = None,
) -> Report:
    """
    Create a report in the Submitted state with its seeded history entry.

    The caller commits.
    """
    now = now or utcnow()
    report = Report(
        id=uuid.uuid4(),
        user_id=owner_id,
        description=submission.description,
        latitude=submission.latitude,
        longitude=submission.longitude,
        address=submission.address,
        images=list(submission.images),
        category=submission.category,
        severity=submission.severity,
        status=ReportStatus.SUBMITTED,
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    db.add(
        StatusHistoryEntry(
            report_id=report.id,
            position=0,
            status=ReportStatus.SUBMITTED,
            actor=SYSTEM_ACTOR,
            comment=SUBMISSION_COMMENT,
            timestamp=now,
        )
    )

    try:
        await db.flush()
    except SQLAlchemyError as e:
        await db.rollback()
        raise InternalServerException("Failed to submit report", cause=e)

    logger.info(f"Report {report.id} submitted by {owner_id} ({submission.category.value})")
    return report


async def _next_position(
    db: AsyncSession,
    model: Type[Union[StatusHistoryEntry, ReportComment]],
    report_id: uuid.UUID,
) -> int:
    result = await db.execute(
        select(func.coalesce(func.max(model.position), -1) + 1).where(model.report_id == report_id)
    )
    return int(result.scalar_one())


async def _flush_append(db: AsyncSession, report: Report) -> None:
    # the report is expired once rolled back
    report_id = report.id
    try:
        await db.flush()
    except (StaleDataError, IntegrityError) as e:
        await db.rollback()
        logger.warning(f"Concurrent append rejected on report {report_id}: {type(e).__name__}")
        raise ConflictException()
    except SQLAlchemyError as e:
        await db.rollback()
        raise InternalServerException("Failed to update report", cause=e)


async def append_status(
    db: AsyncSession,
    report: Report,
    status: str,
    actor: str,
    comment: Optional[str] = None,
    strict: bool = False,
) -> StatusHistoryEntry:
    """
    Record a status change and make it the report's current status.

    Without ``strict`` any valid status may follow any other, including a
    repeat of the current one.
    """
    new_status = parse_status(status)
    if strict:
        check_transition(report.status, new_status)

    now = utcnow()
    entry = StatusHistoryEntry(
        report_id=report.id,
        position=await _next_position(db, StatusHistoryEntry, report.id),
        status=new_status,
        actor=actor,
        comment=comment.strip() if comment and comment.strip() else None,
        timestamp=now,
    )
    db.add(entry)

    previous = report.status
    report.status = new_status
    report.updated_at = now

    await _flush_append(db, report)
    logger.info(f"Report {report.id} status {previous.value} -> {new_status.value} by {actor}")
    return entry


async def append_comment(
    db: AsyncSession,
    report: Report,
    author_id: uuid.UUID,
    text: str,
) -> ReportComment:
    """Add a comment at the end of the report's comment list."""
    text = text.strip()
    if not text:
        raise ValidationException("Comment text is required", field="text")

    now = utcnow()
    comment = ReportComment(
        report_id=report.id,
        position=await _next_position(db, ReportComment, report.id),
        author_id=author_id,
        text=text,
        timestamp=now,
    )
    db.add(comment)
    report.updated_at = now

    await _flush_append(db, report)
    return comment


async def commit(db: AsyncSession, failure_message: str) -> None:
    """Commit the unit of work, translating store failures. Never retries."""
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        raise ConflictException()
    except SQLAlchemyError as e:
        await db.rollback()
        raise InternalServerException(failure_message, cause=e)
