"""Image upload and AI description schemas."""

from datetime import datetime

from pydantic import Field

from civicconnect.models.report import ReportCategory, ReportSeverity
from civicconnect.schemas.common import RequestModel, ResponseModel


class UploadResponse(ResponseModel):
    image_url: str


class DescribeRequest(RequestModel):
    image_url: str = Field(..., alias="imageUrl", max_length=2048)


class DescribeResponse(ResponseModel):
    """Classification suggestion for a photo; the client confirms before submitting."""

    description: str
    category: ReportCategory
    severity: ReportSeverity
    action_required: str = ""
    timestamp: datetime
