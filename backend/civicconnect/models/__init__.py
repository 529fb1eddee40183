# Database models
from civicconnect.models.base import Base
from civicconnect.models.user import User, UserRole, Department
from civicconnect.models.report import (
    Report,
    ReportCategory,
    ReportSeverity,
    ReportStatus,
    StatusHistoryEntry,
    ReportComment,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Department",
    "Report",
    "ReportCategory",
    "ReportSeverity",
    "ReportStatus",
    "StatusHistoryEntry",
    "ReportComment",
]
