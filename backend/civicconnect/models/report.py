"""Civic issue report database models."""

import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from civicconnect.models.base import Base, utcnow
from civicconnect.models.user import Department, User


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


class ReportCategory(str, enum.Enum):
    """Civic issue categories.

    Declaration order matters: keyword classification returns the first
    category whose keywords match.
    """

    WATER_SUPPLY = "Water & Supply Management"
    ELECTRICITY = "Electricity"
    PUBLIC_HEALTH = "Public Health & Safety"
    FIRE_EMERGENCY = "Fire & Emergency Services"
    SANITATION = "Sanitation & Waste Management"
    ROADS = "Roads & Infrastructure"
    PUBLIC_TRANSPORT = "Public Transportation"
    PARKS = "Parks & Environment"
    GENERAL = "General Issues"


class ReportSeverity(str, enum.Enum):
    """Coarse urgency label."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ReportStatus(str, enum.Enum):
    """Workflow status of a report."""

    SUBMITTED = "Submitted"
    ACKNOWLEDGED = "Acknowledged"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class Report(Base):
    """Citizen-submitted civic issue report."""

    __tablename__ = "reports"

    # Ownership
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        index=True,
        nullable=False,
    )

    # User input
    description: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False)

    # Classification
    category: Mapped[ReportCategory] = mapped_column(
        Enum(ReportCategory, values_callable=_enum_values),
        index=True,
        nullable=False,
    )
    severity: Mapped[ReportSeverity] = mapped_column(
        Enum(ReportSeverity, values_callable=_enum_values),
        default=ReportSeverity.MEDIUM,
        nullable=False,
    )

    # Processing
    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, values_callable=_enum_values),
        default=ReportStatus.SUBMITTED,
        index=True,
        nullable=False,
    )
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("departments.id"),
        nullable=True,
    )

    # Optimistic concurrency counter, checked on every UPDATE
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Read-side joins must be requested explicitly by the repository
    owner: Mapped[User] = relationship(User, lazy="raise")
    department: Mapped[Optional[Department]] = relationship(Department, lazy="raise")
    status_history: Mapped[List["StatusHistoryEntry"]] = relationship(
        "StatusHistoryEntry",
        order_by="StatusHistoryEntry.position",
        lazy="raise",
    )
    comments: Mapped[List["ReportComment"]] = relationship(
        "ReportComment",
        order_by="ReportComment.position",
        lazy="raise",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @validates("user_id")
    def _owner_is_set_once(self, key: str, value: uuid.UUID) -> uuid.UUID:
        current = self.__dict__.get("user_id")
        if current is not None and current != value:
            raise ValueError("Report owner cannot be changed")
        return value


class StatusHistoryEntry(Base):
    """One append-only entry of a report's status trail."""

    __tablename__ = "report_status_history"
    __table_args__ = (
        UniqueConstraint("report_id", "position", name="uq_status_history_position"),
    )

    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("reports.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, values_callable=_enum_values),
        nullable=False,
    )
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )


class ReportComment(Base):
    """Append-only comment left on a report by any authorized user."""

    __tablename__ = "report_comments"
    __table_args__ = (
        UniqueConstraint("report_id", "position", name="uq_report_comment_position"),
    )

    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("reports.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    author: Mapped[User] = relationship(User, lazy="raise")
