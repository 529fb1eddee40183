# Pydantic schemas
from civicconnect.schemas.common import Coordinate, Pagination, MessageResponse
from civicconnect.schemas.report import (
    ReportCreate,
    ReportLocation,
    StatusUpdateRequest,
    CommentCreateRequest,
    ReportOut,
    ReportDetail,
    ReportListResponse,
)
from civicconnect.schemas.user import RegisterRequest, LoginRequest, LoginResponse, UserProfile

__all__ = [
    "Coordinate",
    "Pagination",
    "MessageResponse",
    "ReportCreate",
    "ReportLocation",
    "StatusUpdateRequest",
    "CommentCreateRequest",
    "ReportOut",
    "ReportDetail",
    "ReportListResponse",
    "RegisterRequest",
    "LoginRequest",
    "LoginResponse",
    "UserProfile",
]
